"""
Logging setup and JSON error handlers.

Service code raises WorkflowError subclasses; they are turned into JSON
bodies here so blueprints never build error responses by hand.
"""
import logging
import sys
from flask import jsonify, request
from flask_wtf.csrf import CSRFError
from werkzeug.exceptions import HTTPException
from coffee_erp.extensions import db
from coffee_erp.exceptions import WorkflowError


def configure_logging(app):
    """
    Attaches a stream handler to the ``coffee_erp`` logger so service
    modules (``logging.getLogger(__name__)``) and ``app.logger`` share one
    format. Tests keep pytest's own capture.
    """
    package_logger = logging.getLogger('coffee_erp')
    package_logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    if app.testing:
        return

    if app.config.get('LOG_TO_STDOUT'):
        stream_handler = logging.StreamHandler(sys.stdout)
    else:
        stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    ))

    if not package_logger.handlers:
        package_logger.addHandler(stream_handler)
    app.logger.info('Coffee ERP workflow startup (%s)', 'debug' if app.debug else 'production')


def _error(name, message, status):
    return jsonify({'error': name, 'message': message}), status


def register_error_handlers(app):

    @app.errorhandler(WorkflowError)
    def handle_workflow_error(error):
        db.session.rollback()
        if error.status_code >= 403:
            app.logger.info('%s on %s: %s', type(error).__name__, request.path, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        app.logger.warning('CSRF validation failed: %s %s', request.method, request.path)
        return _error('CSRFError', error.description, 400)

    @app.errorhandler(404)
    def not_found_error(error):
        return _error('NotFound', 'Resource not found.', 404)

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return _error('MethodNotAllowed', f'{request.method} is not allowed here.', 405)

    @app.errorhandler(HTTPException)
    def http_error(error):
        return _error(error.name.replace(' ', ''), error.description, error.code)

    @app.errorhandler(Exception)
    def unhandled_error(error):
        db.session.rollback()
        app.logger.exception('Unhandled error on %s %s', request.method, request.path)
        return _error('InternalServerError', 'An unexpected error occurred.', 500)
