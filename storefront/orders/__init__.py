from storefront.orders.service import (
    CustomerDetails,
    confirm_payment,
    create_order,
    find_order_by_payment_session,
    generate_order_number,
    get_order,
    list_orders,
    mark_payment_failed,
    order_to_dict,
    payment_request_for,
    start_payment,
)

__all__ = [
    "CustomerDetails",
    "confirm_payment",
    "create_order",
    "find_order_by_payment_session",
    "generate_order_number",
    "get_order",
    "list_orders",
    "mark_payment_failed",
    "order_to_dict",
    "payment_request_for",
    "start_payment",
]
