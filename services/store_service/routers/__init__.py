"""Store service routers package."""

from services.store_service.routers.auth import router as auth_router
from services.store_service.routers.cart import router as cart_router
from services.store_service.routers.categories import router as categories_router
from services.store_service.routers.checkout import router as checkout_router
from services.store_service.routers.customers import router as customers_router
from services.store_service.routers.orders import router as orders_router
from services.store_service.routers.payments import router as payments_router
from services.store_service.routers.products import router as products_router
from services.store_service.routers.reviews import router as reviews_router
from services.store_service.routers.statistics import router as statistics_router

__all__ = [
    "auth_router",
    "cart_router",
    "categories_router",
    "checkout_router",
    "customers_router",
    "orders_router",
    "payments_router",
    "products_router",
    "reviews_router",
    "statistics_router",
]
