from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from inventory import approvals
from inventory.exceptions import IntegrityFault
from inventory.models import Item, Request

from .base import LedgerTestMixin, dt

User = get_user_model()


class RequestAdminActionTests(LedgerTestMixin, TestCase):
    def setUp(self):
        self.admin = User.objects.create_superuser('root@example.com', 'rahasia123')
        self.client.force_login(self.admin)
        self.item = self.make_item(batches=[(dt(2024, 1, 1), 50, 100), (dt(2024, 1, 2), 30, 100)])
        self.requester = self.make_user('it@example.com')

    def run_action(self, action, *requests):
        return self.client.post(
            reverse('admin:inventory_request_changelist'),
            {'action': action, '_selected_action': [req.pk for req in requests]},
            follow=True,
        )

    def test_approve_selected(self):
        req = approvals.create_request(self.requester, [{'item': self.item, 'quantity_requested': 60}])

        response = self.run_action('approve_selected', req)

        self.assertContains(response, '1 permintaan disetujui.')
        self.assertEqual(Request.objects.get(pk=req.pk).status, Request.Status.APPROVED)
        self.assertEqual(self.remaining(self.item), [0, 20])

    def test_integrity_fault_detail_not_shown(self):
        req = approvals.create_request(self.requester, [{'item': self.item, 'quantity_requested': 90}])
        Item.objects.filter(pk=self.item.pk).update(total_stock=100)

        with self.assertLogs('inventory', level='ERROR'):
            response = self.run_action('approve_selected', req)

        self.assertContains(response, IntegrityFault.public_message)
        self.assertNotContains(response, 'total_stock')
        self.assertNotContains(response, 'sisa batch')
        self.assertEqual(Request.objects.get(pk=req.pk).status, Request.Status.PENDING)
        self.assertEqual(self.remaining(self.item), [50, 30])

    def test_business_error_message_is_shown(self):
        req = approvals.create_request(self.requester, [{'item': self.item, 'quantity_requested': 81}])

        response = self.run_action('approve_selected', req)

        self.assertContains(response, 'Stok tidak cukup')
        self.assertEqual(Request.objects.get(pk=req.pk).status, Request.Status.PENDING)
