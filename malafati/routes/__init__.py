"""
Malafati API Routes
===================

All API route blueprints for the Malafati application.

Usage:
    from malafati.routes import register_routes
    register_routes(app)
"""
from .folder_routes import folder_bp
from .student_routes import student_bp
from .parent_routes import parent_bp


def register_routes(app):
    """Register all route blueprints with the Flask app."""
    app.register_blueprint(folder_bp)
    app.register_blueprint(student_bp)
    app.register_blueprint(parent_bp)


__all__ = [
    'register_routes',
    'folder_bp',
    'student_bp',
    'parent_bp',
]
