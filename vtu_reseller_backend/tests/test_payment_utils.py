"""
Unit Tests for payment metadata helpers
"""

import unittest

from utils.payment_utils import (
    extract_destination,
    format_phone_number,
    local_phone_number,
    normalize_service_category,
    validate_service_category,
)


class TestServiceCategory(unittest.TestCase):

    def test_spellings_normalize_to_catalog_keys(self):
        self.assertEqual(normalize_service_category('Airtime'), 'airtime')
        self.assertEqual(normalize_service_category('CABLE_TV'), 'cableTV')
        self.assertEqual(normalize_service_category(' cableTV '), 'cableTV')
        self.assertEqual(normalize_service_category('data_bundle'), 'data')
        self.assertEqual(normalize_service_category('Electricity'), 'electricity')

    def test_unknown_category(self):
        self.assertIsNone(normalize_service_category('insurance'))
        self.assertIsNone(normalize_service_category(None))
        self.assertFalse(validate_service_category('betting'))
        self.assertTrue(validate_service_category('power'))


class TestPhoneNumbers(unittest.TestCase):

    def test_local_number_gets_dial_prefix(self):
        self.assertEqual(format_phone_number('08031234567'), '+2348031234567')
        self.assertEqual(format_phone_number('8031234567'), '+2348031234567')
        self.assertEqual(format_phone_number('0803 123 4567'), '+2348031234567')

    def test_international_number_passes_through(self):
        self.assertEqual(format_phone_number('+2348031234567'), '+2348031234567')

    def test_local_phone_number_strips_prefix(self):
        self.assertEqual(local_phone_number('+2348031234567'), '8031234567')
        self.assertEqual(local_phone_number('08031234567'), '8031234567')


class TestExtractDestination(unittest.TestCase):

    def test_phone_for_airtime(self):
        self.assertEqual(extract_destination({'phone': '08031234567'}, 'airtime'), '08031234567')
        self.assertEqual(extract_destination({'phoneNumber': '0803'}, 'data'), '0803')

    def test_account_for_bills(self):
        meta = {'phone': '08031234567', 'smartcardNumber': '7023456789'}
        self.assertEqual(extract_destination(meta, 'cableTV'), '7023456789')
        self.assertEqual(extract_destination({'meterNumber': ' 4512 '}, 'electricity'), '4512')

    def test_bills_fall_back_to_phone(self):
        self.assertEqual(extract_destination({'phone': '0803'}, 'electricity'), '0803')

    def test_missing_destination(self):
        self.assertIsNone(extract_destination({}, 'airtime'))
        self.assertIsNone(extract_destination(None, 'airtime'))
        self.assertIsNone(extract_destination({'smartcardNumber': '123'}, 'airtime'))


if __name__ == '__main__':
    unittest.main()
