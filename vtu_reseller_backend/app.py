from flask import Flask, jsonify
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from datetime import datetime
import logging
import os

from config.environment import VAS_SYNC_ON_STARTUP
from services.vas_services import VASServices

# Import blueprints
from blueprints.vas_settlement import init_vas_settlement_blueprint

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Configuration
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'vtu-reseller-secret-key-2025')

# Initialize extensions
CORS(app, origins=['*'])

limiter = Limiter(
    app=app,
    key_func=get_remote_address,
    default_limits=["50000 per day", "5000 per hour"],
    storage_uri="memory://",
)

# Catalog, vendor and payment clients live for the whole process
vas_services = VASServices()

vas_settlement_blueprint = init_vas_settlement_blueprint(vas_services, limiter)
app.register_blueprint(vas_settlement_blueprint)
logger.info("✓ VAS settlement blueprint registered at /api/vas")

# Warm the primary token (and optionally fill catalog gaps) before serving
vas_services.warm_up(sync=VAS_SYNC_ON_STARTUP)


# Health check endpoint
@app.route('/health', methods=['GET'])
def health_check():
    return jsonify({
        'success': True,
        'message': 'VTU Reseller Backend is running',
        'timestamp': datetime.utcnow().isoformat() + 'Z',
        'version': '1.0.0',
        'data': vas_services.health(),
    })


@app.errorhandler(404)
def not_found(error):
    return jsonify({
        'success': False,
        'message': 'Endpoint not found',
        'error': 'The requested resource was not found on this server.'
    }), 404

@app.errorhandler(500)
def internal_error(error):
    return jsonify({
        'success': False,
        'message': 'Internal server error',
        'error': 'An unexpected error occurred. Please try again later.'
    }), 500

@app.errorhandler(400)
def bad_request(error):
    return jsonify({
        'success': False,
        'message': 'Bad request',
        'error': 'The request could not be understood by the server.'
    }), 400

@app.errorhandler(429)
def rate_limited(error):
    return jsonify({
        'success': False,
        'message': 'Too many requests',
        'error': 'Rate limit exceeded. Please slow down and try again.'
    }), 429

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
