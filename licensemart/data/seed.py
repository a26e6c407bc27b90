"""
Sample dataset loaded into a fresh EntityStore at startup.

Two users, five managed categories, three products and two license types per
product (single user and a five-seat team license).
"""
from licensemart.core.security import hash_password
from licensemart.data.store import EntityStore
from licensemart.utils.logger import get_logger

logger = get_logger("data.seed")

SEED_USERS = [
    {
        "username": "admin",
        "password": "admin123",
        "email": "admin@example.com",
        "first_name": "Admin",
        "last_name": "User",
        "company": "License Marketplace Inc.",
        "is_admin": True,
    },
    {
        "username": "user",
        "password": "user123",
        "email": "user@example.com",
        "first_name": "Regular",
        "last_name": "User",
        "company": "Customer Company",
        "is_admin": False,
    },
]

SEED_CATEGORIES = [
    "Development Tools",
    "Database Software",
    "Cloud & DevOps",
    "Security Tools",
    "Business Software",
]

SEED_PRODUCTS = [
    {
        "name": "Developer Suite Pro",
        "description": (
            "Complete development toolkit with IDE, debugging tools, and advanced code completion. "
            "The Developer Suite Pro provides everything you need for professional software development "
            "across multiple platforms. This license includes 1 year of updates and priority technical support."
        ),
        "short_description": "Complete development toolkit with IDE, debugging tools, and advanced code completion.",
        "price": 89.99,
        "image_url": "https://images.unsplash.com/photo-1555952517-2e8e729e0b44",
        "category": "Development Tools",
        "is_best_seller": True,
        "license_types": [
            ("Single User", "For individual developers", 89.99, 1),
            ("Team License", "For teams up to 5 developers", 299.99, 5),
        ],
    },
    {
        "name": "SQL Database Manager",
        "description": (
            "Powerful database management tool with visual query builder and performance analytics. "
            "Easily manage your database schemas, run optimized queries, and monitor performance metrics."
        ),
        "short_description": "Powerful database management tool with visual query builder and performance analytics.",
        "price": 79.99,
        "image_url": "https://images.unsplash.com/photo-1591017403725-fc69ef973fb7",
        "category": "Database Software",
        "is_popular": True,
        "license_types": [
            ("Single User", "For individual database administrators", 79.99, 1),
            ("Team License", "For teams up to 5 database administrators", 199.99, 5),
        ],
    },
    {
        "name": "Cloud Deployment Suite",
        "description": (
            "Simplified cloud infrastructure management with integrated CI/CD pipelines and monitoring. "
            "Deploy applications to multiple cloud providers with ease and monitor performance in real-time."
        ),
        "short_description": "Simplified cloud infrastructure management with integrated CI/CD pipelines and monitoring.",
        "price": 129.99,
        "image_url": "https://images.unsplash.com/photo-1581291518633-83b4ebd1d83e",
        "category": "Cloud & DevOps",
        "is_new": True,
        "license_types": [
            ("Single User", "For individual DevOps engineers", 129.99, 1),
            ("Team License", "For teams up to 5 DevOps engineers", 499.99, 5),
        ],
    },
]


def load_seed_data(store: EntityStore) -> EntityStore:
    """Populate `store` with the sample dataset and return it."""
    for user in SEED_USERS:
        fields = dict(user)
        password = fields.pop("password")
        store.create_user(password_hash=hash_password(password), **fields)

    for category in SEED_CATEGORIES:
        store.create_category(category)

    # Products first so that license type ids come out 1..6 in catalog order.
    created = []
    for entry in SEED_PRODUCTS:
        fields = {k: v for k, v in entry.items() if k != "license_types"}
        created.append((store.create_product(**fields), entry["license_types"]))

    for product, license_types in created:
        for name, description, price, max_users in license_types:
            store.create_license_type(
                product_id=product.id,
                name=name,
                description=description,
                price=price,
                max_users=max_users,
            )

    logger.info(
        "Seeded store: %d users, %d products, %d categories",
        store.count("user"), store.count("product"), len(store.list_categories()),
    )
    return store
