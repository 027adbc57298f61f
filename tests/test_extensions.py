import unittest

from tests.base import OrderTestCase


class ExtensionWorkflowTestCase(OrderTestCase):
    def test_request_appends_pending_extension_and_activity(self):
        order_id = self.make_order()
        order = self.manager.request_extension(order_id, 3, "need more time", self.buyer_id)

        self.assertEqual(len(order.extensions), 1)
        ext = order.extensions[0]
        self.assertEqual(ext.status, "pending")
        self.assertEqual(ext.days, 3)
        self.assertEqual(ext.requested_by, self.buyer_id)

        last = order.activities[-1]
        self.assertEqual(last.action, "extend_requested")
        self.assertEqual(last.meta["days"], 3)
        self.assertEqual(last.meta["extension_id"], ext.id)

    def test_decline_keeps_delivery_time(self):
        order_id = self.make_order()
        self.manager.request_extension(order_id, 3, "need more time", self.buyer_id)
        order = self.manager.decide_extension(order_id, 0, "declined", self.seller_id)

        self.assertEqual(order.extensions[0].status, "declined")
        self.assertEqual(order.delivery_time, 5)
        self.assertEqual(order.activities[-1].action, "extend_declined")
        self.assertEqual(order.activities[-1].meta["days"], 3)

    def test_accept_adds_days(self):
        order_id = self.make_order()
        self.manager.request_extension(order_id, 3, None, self.seller_id)
        order = self.manager.decide_extension(order_id, 0, "accepted", self.buyer_id)

        self.assertEqual(order.delivery_time, 8)
        meta = order.activities[-1].meta
        self.assertEqual(meta["added_days"], 3)
        self.assertEqual(meta["previous"], 5)
        self.assertEqual(meta["new_total"], 8)
        self.assertEqual(order.extensions[0].decided_by, self.buyer_id)

    def test_decided_extension_cannot_be_decided_again(self):
        order_id = self.make_order()
        self.manager.request_extension(order_id, 3, None, self.buyer_id)
        self.manager.decide_extension(order_id, 0, "accepted", self.seller_id)

        err = self.assertServiceError(
            "BAD_REQUEST", self.manager.decide_extension, order_id, 0, "declined", self.seller_id
        )
        self.assertEqual(err.message, "Extension already decided")
        self.assertEqual(self.order(order_id).delivery_time, 8)

    def test_invalid_index(self):
        order_id = self.make_order()
        err = self.assertServiceError(
            "BAD_REQUEST", self.manager.decide_extension, order_id, 0, "accepted", self.seller_id
        )
        self.assertEqual(err.message, "Invalid extension index")

    def test_invalid_decision(self):
        order_id = self.make_order()
        self.manager.request_extension(order_id, 3, None, self.buyer_id)
        self.assertServiceError(
            "BAD_REQUEST", self.manager.decide_extension, order_id, 0, "maybe", self.seller_id
        )
        self.assertEqual(self.order(order_id).extensions[0].status, "pending")

    def test_requester_cannot_decide_own_extension(self):
        order_id = self.make_order()
        self.manager.request_extension(order_id, 3, None, self.buyer_id)
        self.assertServiceError(
            "FORBIDDEN", self.manager.decide_extension, order_id, 0, "accepted", self.buyer_id
        )

    def test_outsider_cannot_request_or_decide(self):
        order_id = self.make_order()
        self.assertServiceError(
            "FORBIDDEN", self.manager.request_extension, order_id, 3, None, self.stranger_id
        )
        self.manager.request_extension(order_id, 3, None, self.buyer_id)
        self.assertServiceError(
            "FORBIDDEN", self.manager.decide_extension, order_id, 0, "accepted", self.stranger_id
        )

    def test_days_must_be_positive_integer(self):
        order_id = self.make_order()
        for days in (0, -2, 1.5, "3", True, None):
            self.assertServiceError(
                "BAD_REQUEST", self.manager.request_extension, order_id, days, None, self.buyer_id
            )
        self.assertEqual(self.order(order_id).extensions, [])

    def test_no_pending_extension_to_decide(self):
        order_id = self.make_order()
        err = self.assertServiceError(
            "BAD_REQUEST", self.manager.decide_latest_pending, order_id, "accepted", self.seller_id
        )
        self.assertEqual(err.message, "No pending extension to decide")

    def test_latest_pending_is_most_recent(self):
        order_id = self.make_order()
        self.manager.request_extension(order_id, 1, "first", self.buyer_id)
        self.manager.request_extension(order_id, 4, "second", self.buyer_id)

        order = self.manager.decide_latest_pending(order_id, "accepted", self.seller_id)
        self.assertEqual([e.status for e in order.extensions], ["pending", "accepted"])
        self.assertEqual(order.delivery_time, 9)

    def test_unknown_extension_id(self):
        order_id = self.make_order()
        self.assertServiceError(
            "NOT_FOUND", self.manager.decide_extension_by_id, order_id, "ext-missing", "accepted", self.seller_id
        )

    def test_terminal_order_rejects_extension(self):
        order_id = self.make_order()
        self.manager.update_order_status(order_id, "complete", "done", self.seller_id)
        self.assertServiceError(
            "BAD_REQUEST", self.manager.request_extension, order_id, 2, None, self.buyer_id
        )

    def test_unknown_order(self):
        self.assertServiceError(
            "NOT_FOUND", self.manager.request_extension, "ORD-missing", 2, None, self.buyer_id
        )


class ExtendDeliveryTestCase(OrderTestCase):
    def test_participant_extends_without_approval(self):
        order_id = self.make_order()
        order = self.manager.extend_delivery(order_id, 2, self.seller_id)

        self.assertEqual(order.delivery_time, 7)
        last = order.activities[-1]
        self.assertEqual(last.action, "extend_delivery")
        self.assertEqual(last.meta, {"added_days": 2, "previous": 5, "new_total": 7})

    def test_admin_may_extend(self):
        order_id = self.make_order()
        order = self.manager.extend_delivery(order_id, 1, self.admin_id, is_admin=True)
        self.assertEqual(order.delivery_time, 6)

    def test_outsider_may_not_extend(self):
        order_id = self.make_order()
        self.assertServiceError("FORBIDDEN", self.manager.extend_delivery, order_id, 1, self.stranger_id)


if __name__ == "__main__":
    unittest.main()
