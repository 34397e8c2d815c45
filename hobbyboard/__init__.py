"""
Hobbyboard: a small session-authenticated web app for users, their profile
pictures and the hobbies they have picked up.

The FastAPI application is built by `hobbyboard.app.create_app`; storage and
database backends are selected once per process in `hobbyboard.dependencies`.
"""
