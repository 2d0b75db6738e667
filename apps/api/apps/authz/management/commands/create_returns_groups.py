"""
Management command to create returns RBAC groups.

Usage:
    python manage.py create_returns_groups

Creates (idempotently):
- Sales: create/delete pending sale returns
- Inventory: create/delete pending purchase returns
- Manager: operate and decide
- Accounting: approve/reject returns, apply/cancel notes
"""
from django.core.management.base import BaseCommand
from django.contrib.auth.models import Group


class Command(BaseCommand):
    help = 'Create returns RBAC groups (Sales, Inventory, Manager, Accounting)'

    GROUPS = [
        ('Sales', 'Sales staff - create returns'),
        ('Inventory', 'Inventory staff - create returns'),
        ('Manager', 'Managers - create and decide returns'),
        ('Accounting', 'Accounting - decide returns, manage notes'),
    ]

    def handle(self, *args, **options):
        created_count = 0
        existing_count = 0

        for group_name, description in self.GROUPS:
            group, created = Group.objects.get_or_create(name=group_name)

            if created:
                created_count += 1
                self.stdout.write(
                    self.style.SUCCESS(f'Created group: {group_name} ({description})')
                )
            else:
                existing_count += 1
                self.stdout.write(
                    self.style.WARNING(f'Group already exists: {group_name}')
                )

        self.stdout.write(
            self.style.SUCCESS(
                f'\nSummary: {created_count} created, {existing_count} existing'
            )
        )
