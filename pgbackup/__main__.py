from pgbackup.cli import app

app()
