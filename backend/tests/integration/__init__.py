"""
Integration tests package.

Exercises the real SQLAlchemy repositories, the unit of work and the Flask
blueprints against an in-memory SQLite database.
"""
