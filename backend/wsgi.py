# Overview: WSGI entrypoint; also the FLASK_APP target for CLI commands.

from backoffice import create_app

app = create_app()
