"""
Management command to populate dummy data for testing.

Creates demo users, catalog products, approved deposits and orders. Money
moves only through the deposit workflow and the ledger engine, so the seeded
wallets and ledger entries stay consistent.
"""

from decimal import Decimal
from django.core.management.base import BaseCommand
from django.contrib.auth.models import User

from catalog.models import Product
from wallet import deposits, ledger
from wallet.models import Wallet, LedgerEntry, Deposit, Order, UserRole, Role
from wallet.roles import grant_role


class Command(BaseCommand):
    help = 'Populate the database with dummy users, products, deposits and orders for testing'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before creating new data',
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            LedgerEntry.objects.all().delete()
            Order.objects.all().delete()
            Deposit.objects.all().delete()
            Wallet.objects.all().delete()
            UserRole.objects.all().delete()
            Product.objects.all().delete()
            User.objects.filter(is_superuser=False).delete()
            self.stdout.write(self.style.SUCCESS('Cleared existing data'))

        self.stdout.write('Creating dummy data...')

        users_data = [
            {'username': 'admin', 'email': 'admin@example.com', 'deposit': None, 'role': Role.ADMIN},
            {'username': 'alice', 'email': 'alice@example.com', 'deposit': '1000.00', 'role': None},
            {'username': 'bob', 'email': 'bob@example.com', 'deposit': '500.00', 'role': None},
            {'username': 'charlie', 'email': 'charlie@example.com', 'deposit': '750.00', 'role': None},
            {'username': 'diana', 'email': 'diana@example.com', 'deposit': '250.00', 'role': None},
        ]

        users = {}
        for user_data in users_data:
            user, created = User.objects.get_or_create(
                username=user_data['username'],
                defaults={'email': user_data['email']}
            )
            if created:
                user.set_password('password123')
                user.save()
                self.stdout.write(f"  Created user: {user.username}")
            else:
                self.stdout.write(f"  User exists: {user.username}")

            if user_data['role']:
                grant_role(user, user_data['role'])
            users[user.username] = user

        self.stdout.write('\nCreating products...')
        products_data = [
            {'title': 'Icon Pack', 'price': '300.00', 'file_url': 'https://files.example.com/icon-pack.zip'},
            {'title': 'Lightroom Presets', 'price': '150.00', 'file_url': 'https://files.example.com/presets.zip'},
            {'title': 'Website Template', 'price': '450.00', 'external_link': 'https://drive.example.com/template'},
        ]
        products = []
        for product_data in products_data:
            product, _ = Product.objects.get_or_create(
                title=product_data['title'],
                defaults={
                    'price': Decimal(product_data['price']),
                    'file_url': product_data.get('file_url', ''),
                    'external_link': product_data.get('external_link', ''),
                }
            )
            products.append(product)
            self.stdout.write(f"  {product.title}: ৳{product.price}")

        # Accounts with ledger history were seeded by an earlier run
        seeded = set(
            LedgerEntry.objects.filter(user__in=users.values())
            .values_list('user__username', flat=True)
        )

        self.stdout.write('\nApproving deposits...')
        for index, user_data in enumerate(users_data):
            if not user_data['deposit']:
                continue
            user = users[user_data['username']]
            if user.username in seeded:
                self.stdout.write(f"  {user.username}: already seeded, skipped")
                continue
            deposit = deposits.submit(
                user,
                Decimal(user_data['deposit']),
                'bkash' if index % 2 else 'rocket',
                f'0171100000{index}',
                f'DEMO{user.pk:04d}{index}',
            )
            deposits.approve(deposit.pk)
            self.stdout.write(f"  {user.username}: +৳{deposit.amount}")

        self.stdout.write('\nCreating sample orders...')
        sample_orders = [
            ('alice', 0, None),
            ('bob', 1, None),
            ('charlie', 2, 'Please send the template to my work email'),
        ]
        for username, product_index, instructions in sample_orders:
            if username in seeded:
                continue
            product = products[product_index]
            order = ledger.debit(
                users[username],
                product.price,
                product_id=product.pk,
                product_title=product.title,
                instructions=instructions,
            )
            self.stdout.write(f"  {username} bought {order.product_title} [{order.status}]")

        self.stdout.write('')
        self.stdout.write(self.style.SUCCESS('=' * 50))
        self.stdout.write(self.style.SUCCESS('Dummy data created successfully!'))
        self.stdout.write(self.style.SUCCESS('=' * 50))
        self.stdout.write('')
        self.stdout.write('Test Credentials (all use password: password123):')
        self.stdout.write('')
        self.stdout.write('  Username     Balance')
        self.stdout.write('  ---------    --------')
        for username, user in users.items():
            self.stdout.write(f"  {username:<12} ৳{ledger.get_balance(user)}")
        self.stdout.write('')
