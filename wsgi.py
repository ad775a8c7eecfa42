"""
WSGI entry point for articlepay
"""
from dotenv import load_dotenv

load_dotenv()

from articlepay.factory import create_app

app = create_app()

# Gunicorn/uWSGI compatibility
application = app

if __name__ == "__main__":
    cfg = app.config["APP_CONFIG"]
    app.run(host=cfg["APP_HOST"], port=cfg["APP_PORT"], debug=cfg["FLASK_DEBUG"])
