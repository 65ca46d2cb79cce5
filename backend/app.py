"""
Overhead Satellite Tracker Backend Application
Flask application entry point with tracker service wiring and API routes.
"""
import os
import atexit
from flask import Flask, jsonify
from flask_cors import CORS

from config import config
from logging_config import configure_logging
from services.tracker_service import TrackerService
from utils.exceptions import TrackerError, UpstreamUnavailable
from utils.response_util import error_response, success_response


def create_app(config_name=None, overrides=None):
    """
    Application factory function.

    Args:
        config_name: Configuration name ('development', 'production', 'testing' or 'default')
        overrides: Optional dict of config values applied after the named config

    Returns:
        Flask application instance
    """
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'default')

    app = Flask(__name__)
    app.config.from_object(config[config_name])
    if overrides:
        app.config.update(overrides)

    configure_logging(app.config['LOG_LEVEL'], app.config.get('LOG_FILE'))

    # Tracker service owns the selection and position stores
    app.extensions['tracker'] = TrackerService.from_config(app.config)
    app.logger.info(f"Tracker ready (storage: {app.config['STORAGE_BACKEND']}, "
                    f"target count: {app.config['TARGET_COUNT']})")

    # Enable CORS
    CORS(app, resources={
        r"/api/*": {
            "origins": "*",
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"]
        }
    })

    # Register blueprints
    from routes.tracker_routes import tracker_bp

    app.register_blueprint(tracker_bp)

    # Health check endpoint
    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Health check endpoint for monitoring."""
        return jsonify({
            'status': 'ok',
            'message': 'Overhead Satellite Tracker API is running',
            'version': '1.0.0',
            'storage_backend': app.config['STORAGE_BACKEND'],
        })

    # API info endpoint
    @app.route('/api', methods=['GET'])
    def api_info():
        """API information and available endpoints."""
        return jsonify({
            'name': 'Overhead Satellite Tracker API',
            'version': '1.0.0',
            'data_source': app.config['UPSTREAM_URL'],
            'endpoints': {
                'refresh': '/api/satellites?lat=<deg>&lon=<deg>',
                'positions': '/api/positions?lat=<deg>&lon=<deg>',
                'selection': '/api/selection',
                'scheduler': '/api/scheduler/status',
                'health': '/api/health',
            }
        })

    # Scheduler status endpoint
    @app.route('/api/scheduler/status', methods=['GET'])
    def scheduler_status():
        """Get scheduler status and statistics."""
        from services.scheduler_service import get_scheduler_status
        return jsonify(get_scheduler_status())

    # Manual refresh trigger
    @app.route('/api/scheduler/trigger-refresh', methods=['POST'])
    def trigger_refresh():
        """Manually trigger a refresh of the default observer."""
        from services.scheduler_service import default_observer, trigger_manual_refresh
        if default_observer(app) is None:
            return error_response('DEFAULT_OBSERVER_LAT/LON are not configured', 409)
        trigger_manual_refresh(app)
        return success_response(message='Refresh triggered', status_code=202)

    # Error handlers
    @app.errorhandler(TrackerError)
    def tracker_error(error):
        retryable = True if isinstance(error, UpstreamUnavailable) else None
        return error_response(error.message, error.status_code, retryable=retryable)

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Resource not found'}), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'error': 'Internal server error'}), 500

    return app


# Create application instance
app = create_app()


def start_scheduler():
    """Start the background refresh scheduler if configured."""
    from services.scheduler_service import initialize_scheduler, shutdown_scheduler

    if initialize_scheduler(app):
        atexit.register(shutdown_scheduler)


if __name__ == '__main__':
    # Start background scheduler
    start_scheduler()

    port = int(os.environ.get('PORT', 3000))

    # Run the application
    print("=" * 50)
    print("Overhead Satellite Tracker API Server")
    print("=" * 50)
    print(f"Server running at: http://localhost:{port}")
    print(f"API documentation: http://localhost:{port}/api")
    print("=" * 50)

    app.run(
        host='0.0.0.0',
        port=port,
        debug=False,
        use_reloader=False
    )
