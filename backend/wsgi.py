# backend/wsgi.py
from ddik import create_app

app = create_app()
