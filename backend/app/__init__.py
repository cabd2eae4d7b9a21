"""
Sentry Dashboard Relay Backend
==============================

This is the Python package for the backend API.

HOW IT'S ORGANIZED:
------------------
- models/    = Data structures (what does a request look like?)
- services/  = Workers (actually talk to Sentry, report errors)
- routers/   = API endpoints (the doors into our app)
- utils/     = Small pure helpers (normalizing, intervals, reshaping)
- main.py    = Puts it all together and starts the server
"""
