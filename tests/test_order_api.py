import unittest

from flask_jwt_extended import create_access_token

from tests.base import OrderTestCase


class OrderApiTestCase(OrderTestCase):
    def setUp(self):
        super().setUp()
        self.client = self.app.test_client()

    def auth(self, user_id):
        return {"Authorization": f"Bearer {create_access_token(identity=user_id)}"}

    def test_requires_token(self):
        res = self.client.get("/api/v1/orders")
        self.assertEqual(res.status_code, 401)

    def test_create_and_fetch(self):
        res = self.client.post(
            "/api/v1/orders",
            json={"seller_id": self.seller_id, "buyer_id": self.buyer_id, "price": 30, "title": "Poster"},
            headers=self.auth(self.buyer_id),
        )
        self.assertEqual(res.status_code, 201)
        body = res.get_json()
        self.assertTrue(body["success"])
        order_id = body["order"]["id"]
        self.assertEqual(body["order"]["status"], "inprogress")

        res = self.client.get(f"/api/v1/orders/{order_id}", headers=self.auth(self.seller_id))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.get_json()["order"]["my_role"], "seller")

    def test_error_contract(self):
        order_id = self.make_order()

        res = self.client.get(f"/api/v1/orders/{order_id}", headers=self.auth(self.stranger_id))
        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.get_json()["error"]["code"], "FORBIDDEN")

        res = self.client.get("/api/v1/orders/ORD-none", headers=self.auth(self.buyer_id))
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.get_json()["error"]["code"], "NOT_FOUND")

        res = self.client.post(
            f"/api/v1/orders/{order_id}/extensions/latest/decision",
            json={"decision": "accepted"},
            headers=self.auth(self.seller_id),
        )
        self.assertEqual(res.status_code, 400)
        error = res.get_json()["error"]
        self.assertEqual(error["code"], "BAD_REQUEST")
        self.assertEqual(error["message"], "No pending extension to decide")

    def test_extension_flow(self):
        order_id = self.make_order()
        res = self.client.post(
            f"/api/v1/orders/{order_id}/extensions",
            json={"days": 3, "reason": "need more time"},
            headers=self.auth(self.buyer_id),
        )
        self.assertEqual(res.status_code, 201)
        self.assertEqual(len(res.get_json()["order"]["pending_extensions"]), 1)

        res = self.client.post(
            f"/api/v1/orders/{order_id}/extensions/index/0/decision",
            json={"decision": "accepted"},
            headers=self.auth(self.seller_id),
        )
        self.assertEqual(res.status_code, 200)
        order = res.get_json()["order"]
        self.assertEqual(order["delivery_time"], 8)
        self.assertEqual(order["pending_extensions"], [])
        self.assertNotIn("extend_requested", [a["action"] for a in order["activities"]])

    def test_cancellation_and_admin_resolution(self):
        order_id = self.make_order()
        res = self.client.get(
            f"/api/v1/orders/{order_id}/cancellation-eligibility", headers=self.auth(self.buyer_id)
        )
        self.assertTrue(res.get_json()["can_cancel"])

        self.client.post(
            f"/api/v1/orders/{order_id}/cancellations",
            json={"reason": "wrong scope"},
            headers=self.auth(self.buyer_id),
        )
        res = self.client.post(
            f"/api/v1/orders/{order_id}/cancellations/latest/decision",
            json={"decision": "declined"},
            headers=self.auth(self.seller_id),
        )
        self.assertEqual(res.get_json()["order"]["cancellations"][0]["status"], "admin_review")

        res = self.client.get("/api/v1/admin/cancellations", headers=self.auth(self.buyer_id))
        self.assertEqual(res.status_code, 403)

        res = self.client.get("/api/v1/admin/cancellations", headers=self.auth(self.admin_id))
        self.assertEqual(res.get_json()["pagination"]["total"], 1)

        res = self.client.post(
            f"/api/v1/admin/orders/{order_id}/cancellations/accept",
            json={"admin_reason": "seller unresponsive"},
            headers=self.auth(self.admin_id),
        )
        self.assertEqual(res.status_code, 200)
        order = res.get_json()["order"]
        self.assertEqual(order["status"], "cancel")
        self.assertTrue(order["refund_processed"])
        self.assertEqual(order["my_role"], "admin")

    def test_status_delivery_and_review(self):
        order_id = self.make_order()
        res = self.client.patch(
            f"/api/v1/orders/{order_id}/status", json={}, headers=self.auth(self.seller_id)
        )
        self.assertEqual(res.status_code, 400)

        self.client.post(f"/api/v1/orders/{order_id}/delivery", json={}, headers=self.auth(self.seller_id))
        res = self.client.post(
            f"/api/v1/orders/{order_id}/delivery/accept", json={}, headers=self.auth(self.buyer_id)
        )
        self.assertEqual(res.get_json()["order"]["status"], "complete")

        res = self.client.post(
            f"/api/v1/orders/{order_id}/review",
            json={"rating": 5, "review": "Great"},
            headers=self.auth(self.buyer_id),
        )
        self.assertEqual(res.status_code, 200)

        res = self.client.post(
            f"/api/v1/orders/{order_id}/review/reply",
            json={"reply": "Thank you"},
            headers=self.auth(self.seller_id),
        )
        self.assertEqual(res.get_json()["order"]["seller_reply"], "Thank you")

        res = self.client.get(f"/api/v1/reviews/users/{self.seller_id}")
        self.assertEqual(res.get_json()["reviews"][0]["reply"], "Thank you")

        res = self.client.get("/api/v1/orders", headers=self.auth(self.buyer_id))
        self.assertEqual([o["id"] for o in res.get_json()["orders"]], [order_id])

        res = self.client.get("/api/v1/orders/completed", headers=self.auth(self.seller_id))
        self.assertEqual(len(res.get_json()["orders"]), 1)

    def test_seller_response_and_revision_routes(self):
        order_id = self.make_order()
        res = self.client.post(f"/api/v1/orders/{order_id}/accept", json={}, headers=self.auth(self.buyer_id))
        self.assertEqual(res.status_code, 403)

        res = self.client.post(f"/api/v1/orders/{order_id}/accept", json={}, headers=self.auth(self.seller_id))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.get_json()["order"]["status"], "accepted")

        self.client.post(f"/api/v1/orders/{order_id}/delivery", json={}, headers=self.auth(self.seller_id))
        res = self.client.post(
            f"/api/v1/orders/{order_id}/delivery/revision",
            json={"message": "wrong colours", "attachments": "notes.pdf"},
            headers=self.auth(self.buyer_id),
        )
        self.assertEqual(res.status_code, 400)

        res = self.client.post(
            f"/api/v1/orders/{order_id}/delivery/revision",
            json={"message": "wrong colours"},
            headers=self.auth(self.buyer_id),
        )
        self.assertEqual(res.get_json()["order"]["status"], "revision")

        other_id = self.make_order()
        res = self.client.post(
            f"/api/v1/orders/{other_id}/decline", json={"reason": "busy"}, headers=self.auth(self.seller_id)
        )
        order = res.get_json()["order"]
        self.assertEqual(order["status"], "cancel")
        self.assertTrue(order["refund_processed"])


if __name__ == "__main__":
    unittest.main()
