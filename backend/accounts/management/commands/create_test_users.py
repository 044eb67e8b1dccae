from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand

from accounts.models import CustomUser


class Command(BaseCommand):
    help = 'Create local back-office users, one per role'

    def handle(self, *args, **options):
        users_data = [
            {'username': 'sales_user', 'password': 'sales_password', 'role': 'sales', 'email': 'sales@example.com'},
            {'username': 'manager_user', 'password': 'manager_password', 'role': 'manager', 'email': 'manager@example.com'},
            {'username': 'finance_user', 'password': 'finance_password', 'role': 'finance', 'email': 'finance@example.com'},
        ]

        created = 0
        for user_data in users_data:
            if CustomUser.objects.filter(username=user_data['username']).exists():
                self.stdout.write(self.style.WARNING(f"User {user_data['username']} already exists"))
                continue

            user = CustomUser.objects.create(
                username=user_data['username'],
                email=user_data['email'],
                password=make_password(user_data['password']),
                role=user_data['role'],
            )
            created += 1
            self.stdout.write(self.style.SUCCESS(f"Created {user.role} user: {user.username}"))

        self.stdout.write(self.style.SUCCESS(f"Done. Created {created} user(s)."))
