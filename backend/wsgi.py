# backend/wsgi.py
from smartpos import create_app

app = create_app()
