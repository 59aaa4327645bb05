# backend/wsgi.py
import atexit

from laundrypos import create_app, close_terminal

app = create_app()
atexit.register(close_terminal, app)
