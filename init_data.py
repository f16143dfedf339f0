from ecofinds import create_app
from ecofinds.extensions import db
from ecofinds.models import (
    Category,
    User,
    Product,
    ProductStatus,
)

app = create_app()

with app.app_context():
    # Create initial categories
    categories_data = [
        {"name": "Electronics",
         "description": "Pre-owned gadgets, devices and accessories"},
        {"name": "Clothing",
         "description": "Secondhand fashion and vintage apparel"},
        {"name": "Furniture",
         "description": "Upcycled and refurbished furniture"},
        {"name": "Books", "description": "Used books and magazines"},
        {"name": "Home & Garden",
         "description": "Household items, plants and garden tools"},
        {"name": "Sports", "description": "Sports gear and outdoor equipment"},
        {"name": "Toys", "description": "Gently used toys and games"},
        {"name": "Other", "description": "Everything else worth reusing"},
    ]

    categories_dict = {}
    for cat_data in categories_data:
        existing = Category.query.filter_by(name=cat_data["name"]).first()
        if not existing:
            category = Category(
                name=cat_data["name"], description=cat_data["description"]
            )
            db.session.add(category)
            db.session.flush()
            categories_dict[cat_data["name"]] = category
            print(f"Created category: {cat_data['name']}")
        else:
            categories_dict[cat_data["name"]] = existing

    # Create demo sellers and their listings
    sellers_data = [
        {
            "username": "greenseller",
            "email": "seller1@example.com",
            "products": [
                {
                    "title": "Refurbished Laptop",
                    "description": (
                        "14-inch laptop, new battery, wiped and reinstalled"
                    ),
                    "price": 349.00,
                    "category": "Electronics",
                },
                {
                    "title": "Bamboo Desk Organizer",
                    "description": "Barely used bamboo organizer, 4 slots",
                    "price": 15.50,
                    "category": "Home & Garden",
                },
            ],
        },
        {
            "username": "vintagefinds",
            "email": "seller2@example.com",
            "products": [
                {
                    "title": "Vintage Denim Jacket",
                    "description": "Classic 90s denim jacket, size M",
                    "price": 42.00,
                    "category": "Clothing",
                },
                {
                    "title": "Oak Side Table",
                    "description": "Solid oak side table, sanded and oiled",
                    "price": 85.00,
                    "category": "Furniture",
                },
                {
                    "title": "Paperback Classics Bundle",
                    "description": "Ten classic novels in good condition",
                    "price": 25.00,
                    "category": "Books",
                },
            ],
        },
    ]

    for seller_data in sellers_data:
        seller = User.query.filter_by(email=seller_data["email"]).first()
        if not seller:
            seller = User(
                username=seller_data["username"], email=seller_data["email"]
            )
            seller.set_password("password123")
            db.session.add(seller)
            db.session.flush()
            print(
                "Created seller: %s / password123 - %s"
                % (seller_data["email"], seller_data["username"])
            )

            for product_data in seller_data["products"]:
                product = Product(
                    seller_id=seller.id,
                    category_id=categories_dict[product_data["category"]].id,
                    title=product_data["title"],
                    description=product_data["description"],
                    price=product_data["price"],
                    status=ProductStatus.ACTIVE,
                )
                db.session.add(product)
                print(f"  Created product: {product_data['title']}")

    # Demo buyer
    buyer_email = "buyer@example.com"
    if not User.query.filter_by(email=buyer_email).first():
        buyer = User(username="ecobuyer", email=buyer_email)
        buyer.set_password("password123")
        db.session.add(buyer)
        print(f"Created buyer: {buyer_email} / password123")

    db.session.commit()
    print("Data initialization completed!")
