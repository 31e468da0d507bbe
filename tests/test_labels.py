import unittest

from db.models import CATEGORIES, ITEM_KINDS, ORDER_STATUSES, PRODUCT_STATUSES
from utils import labels


class LabelsTestCase(unittest.TestCase):
    def test_every_value_has_a_label(self):
        self.assertEqual(set(labels.PRODUCT_STATUS_LABELS), set(PRODUCT_STATUSES))
        self.assertEqual(set(labels.ORDER_STATUS_LABELS), set(ORDER_STATUSES))
        self.assertEqual(set(labels.CATEGORY_LABELS), set(CATEGORIES))
        self.assertEqual(set(labels.ITEM_KIND_LABELS), set(ITEM_KINDS))

    def test_product_status_label(self):
        self.assertEqual(labels.product_status_label("available"), "Available")
        self.assertEqual(labels.product_status_label("incoming"), "In transit")
        self.assertEqual(
            labels.product_status_label("incoming", " 25 January "), "In transit · 25 January"
        )
        self.assertEqual(labels.product_status_label("incoming", "-"), "In transit")
        # ETA is ignored for anything not in transit
        self.assertEqual(labels.product_status_label("low-stock", "25 January"), "Low stock")

    def test_fallbacks(self):
        self.assertEqual(labels.order_status_label("shipped"), "Shipped")
        self.assertEqual(labels.category_label("brake-slave"), "Brake wheel cylinder")
        self.assertEqual(labels.item_kind_label("reservation"), "Reservation")
        self.assertEqual(labels.category_label("wipers"), "wipers")
        self.assertEqual(labels.order_status_label(None), "-")
