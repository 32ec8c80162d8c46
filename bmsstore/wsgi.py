# bmsstore/wsgi.py
from bmsstore.app import create_app

# For gunicorn: gunicorn bmsstore.wsgi:app
app = create_app()


if __name__ == "__main__":
    app.run(debug=True)
