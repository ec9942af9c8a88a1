#!/usr/bin/env python
"""
Management script for ChoreQuest.

This script provides command-line utilities for database migrations
and other administrative tasks:

    FLASK_APP=manage.py flask db upgrade
    python manage.py
"""

import os
import sys

# Add application directory to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), 'chorequest'))

from app import create_app

# Create Flask app (Flask-Migrate is initialised inside create_app)
app = create_app()

if __name__ == '__main__':
    # This allows running: python manage.py
    app.run(host='0.0.0.0', port=8099, debug=app.config['DEBUG'])
