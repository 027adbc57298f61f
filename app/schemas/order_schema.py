from marshmallow import fields

from app.extensions import ma


class ExtensionSchema(ma.Schema):
    id = fields.String()
    days = fields.Integer()
    reason = fields.String(allow_none=True)
    status = fields.String()
    requested_by = fields.String()
    requested_at = fields.DateTime()
    decided_by = fields.String(allow_none=True)
    decided_at = fields.DateTime(allow_none=True)


class CancellationSchema(ma.Schema):
    id = fields.String()
    reason = fields.String(allow_none=True)
    status = fields.String()
    requested_by = fields.String()
    requested_at = fields.DateTime()
    decided_by = fields.String(allow_none=True)
    decided_at = fields.DateTime(allow_none=True)
    declined_by = fields.String(allow_none=True)
    declined_by_name = fields.String(allow_none=True)
    admin_reason = fields.String(allow_none=True)
    attachments = fields.List(fields.Raw())


class ActivitySchema(ma.Schema):
    id = fields.String()
    action = fields.String()
    by = fields.String(allow_none=True)
    at = fields.DateTime()
    note = fields.String(allow_none=True)
    from_status = fields.String(allow_none=True)
    to_status = fields.String(allow_none=True)
    meta = fields.Dict()


class OrderListSchema(ma.Schema):
    id = fields.String()
    title = fields.String(allow_none=True)
    status = fields.String()
    seller_id = fields.String()
    buyer_id = fields.String()
    gig_id = fields.String(allow_none=True)
    price = fields.Float()
    tip = fields.Float()
    total_amount = fields.Float()
    currency = fields.String()
    delivery_time = fields.Integer()
    started_at = fields.DateTime(allow_none=True)
    completed_at = fields.DateTime(allow_none=True)
    created_at = fields.DateTime(allow_none=True)


class OrderDetailSchema(OrderListSchema):
    description = fields.String(allow_none=True)
    requirements = fields.String(allow_none=True)
    package_type = fields.String(allow_none=True)
    payment_method = fields.String(allow_none=True)
    payment_status = fields.String(allow_none=True)
    payment_amount = fields.Float(allow_none=True)
    revision_message = fields.String(allow_none=True)
    cancel_message = fields.String(allow_none=True)
    buyer_rating = fields.Integer(allow_none=True)
    buyer_review = fields.String(allow_none=True)
    buyer_review_at = fields.DateTime(allow_none=True)
    seller_reply = fields.String(allow_none=True)
    seller_replied_at = fields.DateTime(allow_none=True)
    refund_eligible = fields.Boolean()
    refund_processed = fields.Boolean()
    refund_amount = fields.Float(allow_none=True)
    refund_processed_at = fields.DateTime(allow_none=True)
    updated_at = fields.DateTime(allow_none=True)
    version = fields.Integer()
    extensions = fields.List(fields.Nested(ExtensionSchema))
    cancellations = fields.List(fields.Nested(CancellationSchema))


order_summary_schema = OrderListSchema()
order_detail_schema = OrderDetailSchema()
activities_schema = ActivitySchema(many=True)
cancellation_schema = CancellationSchema()
