"""
Unit Tests for the Settlement Orchestrator
Tests all scenarios for turning a verified payment into exactly one vendor delivery
"""

import unittest

from models import Catalog, Product
from utils.dynamic_pricing_engine import MarkupPricingEngine
from utils.settlement_orchestrator import DELIVERED, SettlementOrchestrator
from utils.vas_errors import (
    DeliveryFailed,
    PaymentVerificationFailed,
    ProductNotConfigured,
    ProductNotFound,
    TransportError,
)
from vas_doubles import FakeVendor, FakeVerifier, rejected_delivery

MARKUPS = {'airtime': 0.02, 'data': 0.05, 'cableTV': 0.03, 'electricity': 0.02}


def build_catalog():
    return Catalog([
        Product('airtime', 'MTN', 'MTN Airtime', operator_id=341, network='MTN'),
        Product('airtime', 'GLO', 'GLO Airtime', network='GLO'),
        Product('data', 'MTN-1GB-DAILY', 'MTN 1GB Daily', base_price=300, operator_id=341,
                network='MTN', validity='1 day'),
        Product('cableTV', 'DSTV-PADI', 'DStv Padi', base_price=3600, operator_id=1, provider='DStv'),
        Product('electricity', 'AEDC-PREPAID', 'AEDC Prepaid', operator_id=10, disco='AEDC',
                disco_name='Abuja Electricity Distribution Company', service_type='prepaid'),
    ])


class TestSettlementOrchestrator(unittest.TestCase):

    def setUp(self):
        self.catalog = build_catalog()
        self.engine = MarkupPricingEngine(MARKUPS)
        self.engine.price_catalog(self.catalog)
        self.verifier = FakeVerifier()
        self.vendor = FakeVendor()
        self.orchestrator = SettlementOrchestrator(
            self.catalog, self.engine, self.verifier, self.vendor, dial_prefix='+234')

    def test_airtime_vendor_amount_has_markup_removed(self):
        """
        Scenario: customer pays 1530 for MTN airtime, markup 2%
        Expected: one delivery of 1500 keyed by the payment reference
        """
        self.verifier.add_payment('ref-airtime-1', 1530, {
            'service': 'airtime', 'network': 'MTN', 'phone': '08031234567'})

        result = self.orchestrator.settle('ref-airtime-1')

        self.assertTrue(result['success'])
        self.assertEqual(result['status'], DELIVERED)
        self.assertEqual(result['reference'], 'ref-airtime-1')
        self.assertEqual(len(self.vendor.delivery_calls), 1)
        call = self.vendor.delivery_calls[0]
        self.assertEqual(call['amount'], 1500)
        self.assertEqual(call['operatorId'], 341)
        self.assertEqual(call['destination'], '+2348031234567')
        self.assertEqual(call['key'], 'ref-airtime-1')

    def test_response_never_exposes_cost_or_margin(self):
        self.verifier.add_payment('ref-airtime-2', 1530, {
            'service': 'airtime', 'network': 'mtn', 'phone': '08031234567'})

        result = self.orchestrator.settle('ref-airtime-2')

        self.assertEqual(set(result), {'success', 'message', 'reference', 'status', 'transactionId'})
        self.assertIn(str(result['transactionId']), result['message'])
        self.assertNotIn('1500', result['message'])

    def test_fixed_plan_sends_base_price_regardless_of_amount_paid(self):
        """
        Scenario: MTN-1GB-DAILY base 300, resale 315
        Expected: vendor amount is always 300
        """
        self.assertEqual(self.catalog.get('data', 'MTN-1GB-DAILY').resale_price, 315)

        for index, paid in enumerate((315, 400)):
            reference = f'ref-data-{index}'
            self.verifier.add_payment(reference, paid, {
                'service': 'data', 'planId': 'MTN-1GB-DAILY', 'phoneNumber': '+2348031234567'})
            self.orchestrator.settle(reference)

        self.assertEqual([c['amount'] for c in self.vendor.delivery_calls], [300, 300])

    def test_bill_payment_goes_to_account_number(self):
        self.verifier.add_payment('ref-tv-1', 3708, {
            'service': 'cable_tv', 'planId': 'DSTV-PADI', 'smartcardNumber': '7023456789',
            'phone': '08031234567'})

        self.orchestrator.settle('ref-tv-1')

        call = self.vendor.delivery_calls[0]
        self.assertEqual(call['category'], 'cableTV')
        self.assertEqual(call['destination'], '7023456789')
        self.assertEqual(call['amount'], 3600)

    def test_electricity_amount_is_variable(self):
        self.verifier.add_payment('ref-power-1', 5100, {
            'service': 'electricity', 'planId': 'AEDC-PREPAID', 'meterNumber': '45123456789'})

        self.orchestrator.settle('ref-power-1')

        self.assertEqual(self.vendor.delivery_calls[0]['amount'], 5000)

    def test_margin_is_recorded_off_response(self):
        self.verifier.add_payment('ref-airtime-3', 1530, {
            'service': 'airtime', 'network': 'MTN', 'phone': '08031234567'})

        with self.assertLogs('vas.margin', level='INFO') as logs:
            self.orchestrator.settle('ref-airtime-3')

        self.assertIn('margin=30', logs.output[0])
        entry = self.orchestrator.margin_ledger[-1]
        self.assertEqual(entry['reference'], 'ref-airtime-3')
        self.assertEqual(entry['margin'], 30)
        self.assertEqual(entry['state'], DELIVERED)

    # ==================== VERIFICATION FAILURES ====================

    def test_failed_payment_is_never_delivered(self):
        self.verifier.add_payment('ref-failed', 1530, {
            'service': 'airtime', 'network': 'MTN', 'phone': '0803'}, inner_status='failed')

        with self.assertRaises(PaymentVerificationFailed) as ctx:
            self.orchestrator.settle('ref-failed')

        self.assertEqual(ctx.exception.reference, 'ref-failed')
        self.assertEqual(ctx.exception.metadata['failedAt'], 'RECEIVED')
        self.assertEqual(self.vendor.delivery_calls, [])

    def test_reference_mismatch_is_rejected(self):
        self.verifier.add_payment('ref-a', 1530, {
            'service': 'airtime', 'network': 'MTN', 'phone': '0803'}, echoed_reference='ref-b')

        with self.assertRaises(PaymentVerificationFailed):
            self.orchestrator.settle('ref-a')
        self.assertEqual(self.vendor.delivery_calls, [])

    def test_unknown_reference_is_rejected(self):
        with self.assertRaises(PaymentVerificationFailed):
            self.orchestrator.settle('ref-unknown')
        self.assertEqual(self.verifier.calls, ['ref-unknown'])

    def test_empty_reference_skips_verifier(self):
        with self.assertRaises(PaymentVerificationFailed):
            self.orchestrator.settle('')
        self.assertEqual(self.verifier.calls, [])

    def test_non_positive_amount_is_rejected(self):
        self.verifier.add_payment('ref-zero', 0, {
            'service': 'airtime', 'network': 'MTN', 'phone': '0803'})

        with self.assertRaises(PaymentVerificationFailed):
            self.orchestrator.settle('ref-zero')
        self.assertEqual(self.vendor.delivery_calls, [])

    def test_missing_destination_is_rejected(self):
        self.verifier.add_payment('ref-nophone', 1530, {'service': 'airtime', 'network': 'MTN'})

        with self.assertRaises(PaymentVerificationFailed) as ctx:
            self.orchestrator.settle('ref-nophone')
        self.assertEqual(ctx.exception.metadata['failedAt'], 'VERIFIED')

    # ==================== CATALOG GAPS ====================

    def test_unconfigured_product_is_never_delivered(self):
        self.verifier.add_payment('ref-glo', 1020, {
            'service': 'airtime', 'network': 'GLO', 'phone': '08051234567'})

        with self.assertRaises(ProductNotConfigured) as ctx:
            self.orchestrator.settle('ref-glo')

        self.assertTrue(ctx.exception.to_dict()['operatorActionable'])
        self.assertEqual(ctx.exception.to_dict()['errorKind'], 'ProductNotConfigured')
        self.assertEqual(self.vendor.delivery_calls, [])

    def test_fixed_plan_without_base_price_is_not_configured(self):
        self.catalog.add(Product('data', 'GLO-1GB-DAILY', 'GLO 1GB Daily', operator_id=342, network='GLO'))
        self.verifier.add_payment('ref-noprice', 368, {
            'service': 'data', 'planId': 'GLO-1GB-DAILY', 'phone': '08051234567'})

        with self.assertRaises(ProductNotConfigured) as ctx:
            self.orchestrator.settle('ref-noprice')

        self.assertEqual(ctx.exception.detail, 'Fixed plan has no base price')
        self.assertEqual(self.vendor.delivery_calls, [])

    def test_non_dict_metadata_is_treated_as_empty(self):
        self.verifier.add_payment('ref-badmeta', 1530, 'not-a-dict')

        with self.assertRaises(ProductNotFound):
            self.orchestrator.settle('ref-badmeta')
        self.assertEqual(self.vendor.delivery_calls, [])

    def test_unknown_plan_is_product_not_found(self):
        self.verifier.add_payment('ref-plan', 500, {
            'service': 'data', 'planId': 'MTN-999GB-YEARLY', 'phone': '0803'})

        with self.assertRaises(ProductNotFound):
            self.orchestrator.settle('ref-plan')
        self.assertEqual(self.vendor.delivery_calls, [])

    def test_unknown_service_is_product_not_found(self):
        self.verifier.add_payment('ref-bet', 500, {'service': 'betting', 'phone': '0803'})

        with self.assertRaises(ProductNotFound):
            self.orchestrator.settle('ref-bet')

    # ==================== DELIVERY FAILURES ====================

    def test_vendor_rejection_surfaces_vendor_message(self):
        self.verifier.add_payment('ref-reject', 1530, {
            'service': 'airtime', 'network': 'MTN', 'phone': '0803'})
        self.vendor.fail_next_delivery = rejected_delivery('Insufficient vendor balance')

        with self.assertRaises(DeliveryFailed) as ctx:
            self.orchestrator.settle('ref-reject')

        self.assertEqual(ctx.exception.detail, 'Insufficient vendor balance')
        self.assertEqual(ctx.exception.metadata['failedAt'], 'PRICED')
        self.assertEqual(self.orchestrator.margin_ledger[-1]['state'], 'FAILED')

    def test_transport_error_during_delivery_is_delivery_failed(self):
        self.verifier.add_payment('ref-timeout', 1530, {
            'service': 'airtime', 'network': 'MTN', 'phone': '0803'})
        self.vendor.fail_next_delivery = TransportError('Reloadly API request timed out', detail='read timeout')

        with self.assertRaises(DeliveryFailed) as ctx:
            self.orchestrator.settle('ref-timeout')
        self.assertEqual(ctx.exception.detail, 'read timeout')

    def test_resubmitting_a_reference_never_delivers_twice(self):
        """
        Scenario: first delivery attempt fails, the same reference is submitted twice more
        Expected: every attempt uses the same idempotency key; the vendor delivers once
        """
        self.verifier.add_payment('ref-retry', 1530, {
            'service': 'airtime', 'network': 'MTN', 'phone': '0803'})
        self.vendor.fail_next_delivery = rejected_delivery('Temporary failure')

        with self.assertRaises(DeliveryFailed):
            self.orchestrator.settle('ref-retry')
        first = self.orchestrator.settle('ref-retry')
        second = self.orchestrator.settle('ref-retry')

        self.assertEqual({c['key'] for c in self.vendor.delivery_calls}, {'ref-retry'})
        self.assertEqual(self.vendor.delivered_keys, ['ref-retry'])
        self.assertEqual(first['transactionId'], second['transactionId'])

    def test_check_status_delegates_to_vendor(self):
        self.verifier.add_payment('ref-status', 1530, {
            'service': 'airtime', 'network': 'MTN', 'phone': '0803'})
        self.orchestrator.settle('ref-status')

        self.assertTrue(self.orchestrator.check_status('ref-status')['found'])
        self.assertFalse(self.orchestrator.check_status('ref-missing')['found'])


if __name__ == '__main__':
    unittest.main()
