"""Seed script for storefront demo data.

Creates roles, an admin, a staff member, a few customers, categories, products,
orders and reviews so the storefront and the admin statistics have something
to show.

Usage:
    python -m services.store_service.seed_store_data
"""

import asyncio
import random
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import func, select

from libs.auth.models import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_IDS, ROLE_STAFF
from libs.auth.security import hash_password
from libs.common.datetime_utils import utc_now
from libs.db.config import build_engine, build_session_factory
from services.store_service.models import (
    Category,
    Customer,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    Product,
    Review,
    Role,
    User,
    discounted_price,
)
from services.store_service.routers._helpers import slugify
from services.store_service.services.order_ops import shipping_cost_for

engine = build_engine(echo=False)
AsyncSessionLocal = build_session_factory(engine)

DEMO_PASSWORD = "Password123"

ROLES = [
    (ROLE_IDS[ROLE_ADMIN], ROLE_ADMIN, "Full access to the store and its settings"),
    (ROLE_IDS[ROLE_STAFF], ROLE_STAFF, "Manages products, orders and reviews"),
    (ROLE_IDS[ROLE_CUSTOMER], ROLE_CUSTOMER, "Shops and manages their own orders"),
]

CATEGORIES = {
    "laptops": ("Laptops", "Notebooks for work, study and gaming"),
    "phones": ("Phones", "Smartphones from the major brands"),
    "accessories": ("Accessories", "Chargers, cases, mice and keyboards"),
    "audio": ("Audio", "Headphones, earbuds and speakers"),
}

# (category, name, brand, price, stock, discount)
PRODUCTS = [
    ("laptops", "ThinkPad X1 Carbon Gen 11", "Lenovo", "42990000", 12, "5"),
    ("laptops", "MacBook Air M2 13 inch", "Apple", "27990000", 25, "0"),
    ("laptops", "Dell XPS 13 Plus", "Dell", "38490000", 6, "10"),
    ("phones", "iPhone 15 128GB", "Apple", "22990000", 40, "0"),
    ("phones", "Galaxy S24 256GB", "Samsung", "20990000", 18, "8"),
    ("phones", "Pixel 8", "Google", "16490000", 4, "0"),
    ("accessories", "MX Master 3S Mouse", "Logitech", "2490000", 60, "0"),
    ("accessories", "USB-C 65W Charger", "Anker", "690000", 120, "15"),
    ("accessories", "Keychron K2 Keyboard", "Keychron", "2190000", 9, "0"),
    ("audio", "WH-1000XM5 Headphones", "Sony", "8490000", 15, "12"),
    ("audio", "AirPods Pro 2", "Apple", "5990000", 30, "0"),
    ("audio", "Flip 6 Speaker", "JBL", "2790000", 0, "0"),
]

CUSTOMERS = [
    ("an.nguyen@example.com", "An Nguyen", "0901000001", "12 Le Loi, District 1, Ho Chi Minh City"),
    ("binh.tran@example.com", "Binh Tran", "0901000002", "45 Tran Phu, Hai Chau, Da Nang"),
    ("chi.le@example.com", "Chi Le", "0901000003", "8 Hang Bai, Hoan Kiem, Ha Noi"),
]

COMMENTS = {
    5: "Excellent, exactly as described.",
    4: "Very good, delivery was a bit slow.",
    3: "Does the job but nothing special.",
}


def _user(email: str, username: str, role_id: int, phone: str = None) -> User:
    return User(
        email=email,
        username=username,
        phone=phone,
        password_hash=hash_password(DEMO_PASSWORD),
        role_id=role_id,
    )


def _order(customer: Customer, lines: list[tuple[Product, int]], status: OrderStatus, days_ago: int) -> Order:
    created_at = utc_now() - timedelta(days=days_ago)
    items = []
    subtotal = Decimal("0")
    for product, quantity in lines:
        unit_price = discounted_price(product.price, product.discount_percentage)
        line_total = unit_price * quantity
        subtotal += line_total
        items.append(
            OrderItem(
                product_id=product.id,
                product_name=product.name,
                product_price=product.price,
                discount_percentage=product.discount_percentage,
                quantity=quantity,
                subtotal=line_total,
                created_at=created_at,
            )
        )

    shipping = shipping_cost_for(subtotal)
    paid = status in (OrderStatus.SHIPPED, OrderStatus.DELIVERED)
    order = Order(
        order_number=Order.generate_order_number(),
        customer_id=customer.id,
        status=status,
        payment_status=PaymentStatus.PAID if paid else PaymentStatus.PENDING,
        subtotal=subtotal,
        discount_amount=Decimal("0"),
        shipping_cost=shipping,
        total_amount=subtotal + shipping,
        shipping_address=customer.shipping_address,
        shipping_phone=customer.phone,
        created_at=created_at,
        items=items,
    )
    if status in (OrderStatus.SHIPPED, OrderStatus.DELIVERED):
        order.shipped_at = created_at + timedelta(days=1)
    if status == OrderStatus.DELIVERED:
        order.delivered_at = created_at + timedelta(days=3)
    if status == OrderStatus.CANCELLED:
        order.cancelled_at = created_at + timedelta(hours=2)
        order.cancel_reason = "Changed my mind"
    return order


async def seed_store_data():
    async with AsyncSessionLocal() as db:
        print("Seeding store data...")

        count = (await db.execute(select(func.count(Category.id)))).scalar()
        if count:
            print(f"Store data already exists ({count} categories). Skipping seed.")
            return

        # =========================================================================
        # 1. ROLES AND ACCOUNTS
        # =========================================================================
        existing_roles = set((await db.execute(select(Role.id))).scalars().all())
        for role_id, name, description in ROLES:
            if role_id not in existing_roles:
                db.add(Role(id=role_id, name=name, description=description))
        await db.flush()

        db.add(_user("admin@example.com", "Store Admin", ROLE_IDS[ROLE_ADMIN]))
        db.add(_user("staff@example.com", "Store Staff", ROLE_IDS[ROLE_STAFF]))

        customers = []
        for email, username, phone, address in CUSTOMERS:
            first_name, _, last_name = username.partition(" ")
            user = _user(email, username, ROLE_IDS[ROLE_CUSTOMER], phone)
            user.customer = Customer(
                first_name=first_name,
                last_name=last_name or None,
                phone=phone,
                shipping_address=address,
                billing_address=address,
                shipping_country="Vietnam",
            )
            db.add(user)
            customers.append(user.customer)
        await db.flush()

        # =========================================================================
        # 2. CATALOG
        # =========================================================================
        categories = {}
        for key, (name, description) in CATEGORIES.items():
            categories[key] = Category(name=name, slug=slugify(name), description=description)
            db.add(categories[key])
        await db.flush()

        products = []
        for key, name, brand, price, stock, discount in PRODUCTS:
            product = Product(
                name=name,
                slug=slugify(name),
                brand=brand,
                description=f"{brand} {name}",
                price=Decimal(price),
                stock_quantity=stock,
                discount_percentage=Decimal(discount),
                category_id=categories[key].id,
            )
            db.add(product)
            products.append(product)
        await db.flush()

        # =========================================================================
        # 3. ORDERS AND REVIEWS
        # =========================================================================
        rng = random.Random(42)
        in_stock = [p for p in products if p.stock_quantity > 0]
        statuses = [
            OrderStatus.DELIVERED,
            OrderStatus.DELIVERED,
            OrderStatus.SHIPPED,
            OrderStatus.PROCESSING,
            OrderStatus.PENDING,
            OrderStatus.CANCELLED,
        ]
        orders = []
        for customer in customers:
            for status in statuses:
                lines = [(p, rng.randint(1, 2)) for p in rng.sample(in_stock, 2)]
                order = _order(customer, lines, status, days_ago=rng.randint(0, 60))
                db.add(order)
                orders.append(order)
        await db.flush()

        reviews = 0
        for customer in customers:
            delivered = [
                o for o in orders
                if o.customer_id == customer.id and o.status == OrderStatus.DELIVERED
            ]
            reviewed = set()
            for order in delivered:
                for item in order.items:
                    if item.product_id in reviewed:
                        continue
                    reviewed.add(item.product_id)
                    rating = rng.choice([3, 4, 5, 5])
                    db.add(
                        Review(
                            product_id=item.product_id,
                            customer_id=customer.id,
                            rating=rating,
                            comment=COMMENTS[rating],
                            is_verified_purchase=True,
                        )
                    )
                    reviews += 1

        await db.commit()
        print("=" * 60)
        print("Store data seeded successfully!")
        print("=" * 60)
        print(f"  Categories: {len(categories)}")
        print(f"  Products: {len(products)}")
        print(f"  Customers: {len(customers)} (password: {DEMO_PASSWORD})")
        print(f"  Orders: {len(orders)}")
        print(f"  Reviews: {reviews}")
        print("=" * 60)


if __name__ == "__main__":
    asyncio.run(seed_store_data())
