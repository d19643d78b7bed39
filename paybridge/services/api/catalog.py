"""Static sample catalog served by `GET /api/products`."""

from paybridge.services.api.schemas import Product

PRODUCTS: list[Product] = [
    Product(
        id="prod_1",
        name="Premium Plan",
        description="Access to all premium features",
        price=2999,
        currency="usd",
    ),
    Product(
        id="prod_2",
        name="Basic Plan",
        description="Essential features for getting started",
        price=999,
        currency="usd",
    ),
    Product(
        id="prod_3",
        name="Enterprise Plan",
        description="Full access with priority support",
        price=9999,
        currency="usd",
    ),
]
