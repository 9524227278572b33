from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.catalog.constants import BookStatus
from modules.catalog.models import Book, Category
from modules.catalog.repositories.django_repository import BookDjangoRepository
from modules.core.exceptions import StoreError
from modules.orders.constants import OrderStatus, PaymentMethod, PaymentStatus
from modules.orders.dtos import ActorDTO, OrderDraft, OrderLineDraft, ShippingInfo
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderWorkbook

CATEGORIES = [
    ("Fiction", "Novels and short stories", 1),
    ("Science", "Popular science and textbooks", 2),
    ("Children", "Picture books and young readers", 3),
    ("Business", "Management, finance and careers", 4),
]

BOOKS = [
    ("The Silent Harbor", "Mara Quinn", "Lighthouse Press", "Fiction", Decimal("89000")),
    ("Winter Orchard", "Tomas Reyes", "Lighthouse Press", "Fiction", Decimal("120000")),
    ("Paper Lanterns", "Aiko Sato", "Northwind", "Fiction", Decimal("75000")),
    ("A Brief Map of Time", "Leon Hart", "Axiom Books", "Science", Decimal("155000")),
    ("Cells and Circuits", "Priya Nair", "Axiom Books", "Science", Decimal("210000")),
    ("The Curious Comet", "Ben Ortiz", "Axiom Books", "Science", Decimal("98000")),
    ("Milo Finds a Moon", "Jo Park", "Little Oak", "Children", Decimal("45000")),
    ("Ten Tiny Turtles", "Ruth Lane", "Little Oak", "Children", Decimal("39000")),
    ("Ledger Lines", "Carl Weiss", "Summit", "Business", Decimal("185000")),
    ("The Lean Shelf", "Nadia Farouk", "Summit", "Business", Decimal("132000")),
]

# Path through the state machine for each seeded target status.
STATUS_PATHS = {
    OrderStatus.PENDING: [],
    OrderStatus.PROCESSING: [OrderStatus.PROCESSING],
    OrderStatus.SHIPPING: [OrderStatus.PROCESSING, OrderStatus.SHIPPING],
    OrderStatus.DELIVERED: [
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPING,
        OrderStatus.DELIVERED,
    ],
    OrderStatus.CANCELLED: [OrderStatus.CANCELLED],
}


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=30)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created, staff, customers = self._seed_users()
        categories = self._seed_categories()
        books = self._seed_books(categories)
        orders_created = self._seed_orders(customers, staff, books, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"categories={len(categories)}, "
                f"books={len(books)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self):
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        staff = User.objects.filter(username="manager").first()
        if staff is None:
            staff = User.objects.create_user(
                "manager", password="manager123", is_staff=True, first_name="Store Manager"
            )
            created += 1
        customers = []
        for username, first_name in [("reader", "Lena"), ("bookworm", "Omar"), ("user", "Sam")]:
            user = User.objects.filter(username=username).first()
            if user is None:
                user = User.objects.create_user(
                    username,
                    password=f"{username}123",
                    first_name=first_name,
                    email=f"{username}@example.com",
                )
                created += 1
            customers.append(user)
        return created, staff, customers

    def _seed_categories(self) -> dict[str, Category]:
        self.stdout.write("Creating categories...")
        categories = {}
        for name, description, sort_order in CATEGORIES:
            category, _ = Category.objects.get_or_create(
                name=name,
                defaults={"description": description, "sort_order": sort_order},
            )
            categories[name] = category
        self.stdout.write(self.style.SUCCESS("Creating categories... Done!"))
        return categories

    def _seed_books(self, categories: dict[str, Category]) -> list[Book]:
        self.stdout.write("Creating books...")
        books: list[Book] = []
        for title, author, publisher, category, price in BOOKS:
            book, _ = Book.objects.get_or_create(
                title=title,
                author=author,
                defaults={
                    "publisher": publisher,
                    "category": categories[category],
                    "price": price,
                    "stock": random.randint(5, 120),
                    "pages": random.randint(48, 640),
                    "language": "English",
                    "publication_year": random.randint(1995, 2025),
                    "status": BookStatus.ACTIVE,
                },
            )
            books.append(book)
        self.stdout.write(self.style.SUCCESS("Creating books... Done!"))
        return books

    def _seed_orders(self, customers, staff, books: list[Book], count: int) -> int:
        self.stdout.write("Creating orders...")
        if not customers or not books:
            self.stdout.write(self.style.WARNING("Skipping orders (no customers/books)."))
            return 0

        statuses = list(STATUS_PATHS)
        weights = [0.2, 0.15, 0.15, 0.35, 0.15]
        staff_actor = ActorDTO.from_user(staff)
        created = 0

        for i in range(count):
            customer = random.choice(customers)
            order_date = timezone.now() - timedelta(days=random.randint(0, 30))
            workbook = OrderWorkbook(
                order_repository=OrderDjangoRepository(),
                book_repository=BookDjangoRepository(),
                clock=lambda when=order_date: when,
            )
            if workbook.find_by_idempotency_key(f"seed-{i + 1}"):
                continue
            picks = random.sample(books, k=random.randint(1, 3))
            draft = OrderDraft(
                customer_id=customer.pk,
                items=[OrderLineDraft(book_id=b.id, quantity=random.randint(1, 2)) for b in picks],
                shipping=ShippingInfo(
                    name=customer.get_full_name() or customer.username,
                    phone=f"09{random.randint(10000000, 99999999)}",
                    address=f"{random.randint(1, 300)} Library Street",
                    email=customer.email,
                ),
                payment_method=random.choice(list(PaymentMethod)),
                notes=f"Seed order {i + 1}",
                idempotency_key=f"seed-{i + 1}",
            )
            try:
                order = workbook.create_order(draft)
                target = random.choices(statuses, weights=weights, k=1)[0]
                for step in STATUS_PATHS[target]:
                    workbook.update_status(order.id, step, staff_actor)
                if target == OrderStatus.DELIVERED:
                    workbook.update_payment_status(order.id, PaymentStatus.PAID, staff_actor)
            except StoreError as exc:
                self.stdout.write(self.style.WARNING(f"Skipped seed order {i + 1}: {exc}"))
                continue
            created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created
