# bmsstore/models/__init__.py
from .admin_user import AdminUser
from .customer import Customer
from .category import Category
from .product import Product
from .product_media import ProductImage, ProductVideo
from .product_design import ProductDesign
from .cart import CartItem
from .wishlist import WishlistItem
from .offer import Offer, offer_products
from .order import Order
from .order_item import OrderItem
from .trending import TrendingProduct
from .inventory import Inventory
from .review import ProductReview
from .complaint import Complaint
from .analytics_event import AnalyticsEvent
from .site_config import WebsiteConfig, HomeConfig, HeroSlide

__all__ = [
    "AdminUser",
    "Customer",
    "Category",
    "Product",
    "ProductImage",
    "ProductVideo",
    "ProductDesign",
    "CartItem",
    "WishlistItem",
    "Offer",
    "offer_products",
    "Order",
    "OrderItem",
    "TrendingProduct",
    "Inventory",
    "ProductReview",
    "Complaint",
    "AnalyticsEvent",
    "WebsiteConfig",
    "HomeConfig",
    "HeroSlide",
]
