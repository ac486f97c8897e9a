# backend/wsgi.py
from barpos import create_app

app = create_app()
