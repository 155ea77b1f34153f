# -*- coding: utf-8 -*-
"""WSGI entrypoint: gunicorn trustgraph.main:app"""
from trustgraph.factory import create_app

app = create_app()
