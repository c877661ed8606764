"""WSGI entry point for Gunicorn: ``gunicorn -c gunicorn.conf.py wsgi:app``."""
from configmgr_api.flask_app import create_app

app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=False)
