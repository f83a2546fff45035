"""
VAS Settlement Blueprint
Exposes catalog read, catalog synchronization, manual operator-id updates,
payment settlement and delivery status checks.

Responses use the {'success', 'message', 'data'} envelope. Settlement
responses never include vendor cost or margin.
"""

import logging

from flask import Blueprint, jsonify, request

from utils.vas_errors import VASError

logger = logging.getLogger(__name__)

SETTLEMENT_RATE_LIMIT = '30 per minute'


def init_vas_settlement_blueprint(vas_services, limiter=None):
    vas_settlement_bp = Blueprint('vas_settlement', __name__, url_prefix='/api/vas')

    def rate_limited(func):
        if limiter is None:
            return func
        return limiter.limit(SETTLEMENT_RATE_LIMIT)(func)

    def error_response(error: VASError):
        return jsonify(error.to_dict()), error.http_status

    # ==================== CATALOG ====================

    @vas_settlement_bp.route('/catalog', methods=['GET'])
    def get_catalog():
        """Current product catalog (customer prices only)"""
        return jsonify({
            'success': True,
            'data': vas_services.catalog.to_dict(),
        }), 200

    @vas_settlement_bp.route('/catalog/sync', methods=['POST'])
    def sync_operator_ids():
        """Match catalog products to Reloadly operator/biller ids"""
        data = request.get_json(silent=True) or {}
        full_resync = bool(data.get('fullResync', False))

        try:
            result = vas_services.synchronize(full_resync=full_resync)
        except VASError as e:
            logger.error(f"Error syncing operator IDs: {e}")
            return error_response(e)

        message = 'Operator ID sync completed. Review matched IDs below.'
        if result['errors']:
            message = f"Operator ID sync completed with errors for: {', '.join(sorted(result['errors']))}"

        return jsonify({
            'success': True,
            'message': message,
            'data': result,
        }), 200

    @vas_settlement_bp.route('/catalog/operator-ids', methods=['POST'])
    def update_operator_ids():
        """Apply operator ids supplied by an operator"""
        data = request.get_json(silent=True) or {}
        matched_ids = data.get('matchedIds')

        if not isinstance(matched_ids, dict):
            return jsonify({
                'success': False,
                'message': 'matchedIds object is required in request body.',
            }), 400

        result = vas_services.synchronizer.apply_operator_ids(matched_ids)
        return jsonify({
            'success': True,
            'message': f"Successfully updated {result['updatedCount']} operator IDs.",
            'data': result,
        }), 200

    @vas_settlement_bp.route('/catalog/operator-ids', methods=['GET'])
    def export_operator_ids():
        return jsonify({
            'success': True,
            'data': vas_services.synchronizer.export_operator_ids(),
        }), 200

    # ==================== SETTLEMENT ====================

    @vas_settlement_bp.route('/process-transaction', methods=['POST'])
    @rate_limited
    def process_transaction():
        """Verify a payment and deliver the purchased service"""
        data = request.get_json(silent=True) or {}
        reference = data.get('reference')

        if not reference:
            return jsonify({'success': False, 'message': 'Transaction reference is required.'}), 400

        try:
            result = vas_services.orchestrator.settle(str(reference))
        except VASError as e:
            return error_response(e)
        except Exception as e:
            logger.exception(f"Unexpected settlement error for {reference}: {str(e)}")
            return jsonify({'success': False, 'message': 'An internal server error occurred.'}), 500

        return jsonify({
            'success': True,
            'message': result['message'],
            'data': {
                'reference': result['reference'],
                'status': result['status'],
                'transactionId': result['transactionId'],
            },
        }), 200

    @vas_settlement_bp.route('/check-status', methods=['POST'])
    @rate_limited
    def check_status():
        """Delivery status the vendor holds for a payment reference"""
        data = request.get_json(silent=True) or {}
        reference = data.get('reference')

        if not reference:
            return jsonify({'success': False, 'message': 'Transaction reference is required.'}), 400

        try:
            status = vas_services.orchestrator.check_status(str(reference))
        except VASError as e:
            logger.error(f"Status check error for {reference}: {e}")
            return error_response(e)

        if not status['found']:
            return jsonify({'success': False, 'message': status['message']}), 404

        return jsonify({
            'success': True,
            'message': status['message'],
            'data': {
                'status': status['status'],
                'operatorName': status['operatorName'],
                'transactionId': status['transactionId'],
            },
        }), 200

    return vas_settlement_bp
