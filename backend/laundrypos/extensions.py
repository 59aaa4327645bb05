# Overview: Flask extension instances for the local store.

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
