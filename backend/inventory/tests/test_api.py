from io import BytesIO

from django.contrib.auth import get_user_model
from django.urls import reverse
from openpyxl import load_workbook
from rest_framework import status
from rest_framework.test import APITestCase

from inventory import approvals
from inventory.models import ActivityLog, Category, Item, Request, StockBatch, Transaction

from .base import LedgerTestMixin, dt

User = get_user_model()


class InventoryAPITestCase(LedgerTestMixin, APITestCase):
    def setUp(self):
        self.admin = self.make_admin()
        self.unit = self.make_user('it@example.com', unit_kerja='IT')
        self.other_unit = self.make_user('hrd@example.com', unit_kerja='HRD')
        self.kertas = self.make_item('Kertas A4', batches=[
            (dt(2024, 1, 1), 50, 55000),
            (dt(2024, 1, 15), 30, 57500),
        ])
        self.pulpen = self.make_item('Pulpen', unit='pcs', batches=[(dt(2024, 2, 1), 10, 3500)])


class ItemAPITests(InventoryAPITestCase):
    def test_requires_authentication(self):
        response = self.client.get(reverse('item-list'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_unit_kerja_can_read_but_not_write(self):
        self.client.force_authenticate(self.unit)

        response = self.client.get(reverse('item-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['name'] for row in response.data], ['Kertas A4', 'Pulpen'])

        response = self.client.post(reverse('item-list'), {'name': 'Stapler'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_total_stock_is_read_only(self):
        self.client.force_authenticate(self.admin)

        response = self.client.post(
            reverse('item-list'), {'name': 'Stapler', 'unit_of_measure': 'pcs', 'total_stock': 99}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_stock'], 0)

        response = self.client.patch(
            reverse('item-detail', args=[self.kertas.pk]), {'total_stock': 1, 'minimum_stock': 15}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.total_stock(self.kertas), 80)
        self.assertEqual(Item.objects.get(pk=self.kertas.pk).minimum_stock, 15)

    def test_categories(self):
        self.client.force_authenticate(self.unit)
        self.assertEqual(
            self.client.post(reverse('category-list'), {'name': 'ATK'}, format='json').status_code,
            status.HTTP_403_FORBIDDEN,
        )

        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse('category-list'), {'name': 'ATK'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.patch(
            reverse('item-detail', args=[self.kertas.pk]), {'category': response.data['id']}, format='json',
        )
        self.assertEqual(response.data['category_name'], 'ATK')

    def test_filter_by_category(self):
        atk = Category.objects.create(name='ATK')
        Item.objects.filter(pk=self.pulpen.pk).update(category=atk)
        self.client.force_authenticate(self.unit)

        response = self.client.get(reverse('item-list'), {'category': atk.pk})

        self.assertEqual([row['name'] for row in response.data], ['Pulpen'])
        self.assertEqual(response.data[0]['category_name'], 'ATK')

    def test_batches_listed_in_fifo_order(self):
        self.client.force_authenticate(self.unit)
        response = self.client.get(reverse('item-batches', args=[self.kertas.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['remaining_quantity'] for row in response.data], [50, 30])

    def test_delete_item_used_in_request_is_refused(self):
        self.client.force_authenticate(self.unit)
        self.client.post(reverse('request-list'), {'items': [{'item_id': self.pulpen.pk, 'quantity_requested': 1}]}, format='json')

        self.client.force_authenticate(self.admin)
        response = self.client.delete(reverse('item-detail', args=[self.pulpen.pk]))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(Item.objects.filter(pk=self.pulpen.pk).exists())


class StockBatchAPITests(InventoryAPITestCase):
    def test_admin_adds_stock(self):
        self.client.force_authenticate(self.admin)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(reverse('stockbatch-list'), {
                'item': self.pulpen.pk, 'quantity': 20, 'unit_price': '3600',
                'transaction_type': 'HIBAH', 'entry_date': '2024-03-01T00:00:00+07:00',
            }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['remaining_quantity'], 20)
        self.assertEqual(response.data['transaction_type'], 'HIBAH')
        self.assertEqual(self.total_stock(self.pulpen), 30)
        self.assertEqual(StockBatch.objects.get(pk=response.data['id']).added_by, self.admin)
        self.assertTrue(ActivityLog.objects.filter(action='CREATE', entity='STOK').exists())

    def test_unit_kerja_cannot_add_stock(self):
        self.client.force_authenticate(self.unit)
        response = self.client.post(reverse('stockbatch-list'), {'item': self.pulpen.pk, 'quantity': 20}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.total_stock(self.pulpen), 10)

    def test_validation(self):
        self.client.force_authenticate(self.admin)
        for payload in (
            {'item': self.pulpen.pk, 'quantity': 0},
            {'item': self.pulpen.pk, 'quantity': 5, 'unit_price': '-1'},
            {'item': self.pulpen.pk, 'quantity': 5, 'transaction_type': 'RETURN'},
            {'item': 999999, 'quantity': 5},
        ):
            with self.subTest(payload=payload):
                response = self.client.post(reverse('stockbatch-list'), payload, format='json')
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.total_stock(self.pulpen), 10)

    def test_filter_by_item(self):
        self.client.force_authenticate(self.unit)
        response = self.client.get(reverse('stockbatch-list'), {'item': self.kertas.pk})
        self.assertEqual(len(response.data), 2)


class RequestAPITests(InventoryAPITestCase):
    def create_request(self, user, *lines):
        self.client.force_authenticate(user)
        response = self.client.post(reverse('request-list'), {
            'items': [{'item_id': item.pk, 'quantity_requested': quantity} for item, quantity in lines],
            'notes': 'Untuk kegiatan sensus',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data

    def test_create_request(self):
        data = self.create_request(self.unit, (self.kertas, 5), (self.pulpen, 2))
        self.assertEqual(data['status'], 'PENDING')
        self.assertEqual(data['requester']['email'], 'it@example.com')
        self.assertEqual(len(data['items']), 2)
        self.assertTrue(data['request_number'].startswith('REQ/'))

    def test_create_request_validation(self):
        self.client.force_authenticate(self.unit)
        for payload in (
            {'items': []},
            {'items': [{'item_id': self.kertas.pk, 'quantity_requested': 0}]},
            {'items': [{'item_id': self.kertas.pk, 'quantity_requested': 1}, {'item_id': self.kertas.pk, 'quantity_requested': 2}]},
        ):
            with self.subTest(payload=payload):
                response = self.client.post(reverse('request-list'), payload, format='json')
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Request.objects.exists())

    def test_unit_kerja_only_sees_own_requests(self):
        mine = self.create_request(self.unit, (self.kertas, 1))
        theirs = self.create_request(self.other_unit, (self.kertas, 1))

        self.client.force_authenticate(self.unit)
        response = self.client.get(reverse('request-list'))
        self.assertEqual([row['id'] for row in response.data], [mine['id']])
        response = self.client.get(reverse('request-detail', args=[theirs['id']]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse('request-list'))
        self.assertEqual(len(response.data), 2)

    def test_admin_approves_with_partial_grant(self):
        data = self.create_request(self.unit, (self.kertas, 60), (self.pulpen, 5))
        lines = {line['item']['id']: line['id'] for line in data['items']}

        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse('request-approve', args=[data['id']]), {
            'items': [{'id': lines[self.pulpen.pk], 'quantity_approved': 3}],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data['status'], 'APPROVED')
        self.assertEqual(response.data['decided_by']['email'], self.admin.email)
        approved = {line['item']['id']: line['quantity_approved'] for line in response.data['items']}
        self.assertEqual(approved, {self.kertas.pk: 60, self.pulpen.pk: 3})
        self.assertEqual(self.remaining(self.kertas), [0, 20])
        self.assertEqual(self.total_stock(self.pulpen), 7)

    def test_unit_kerja_cannot_approve(self):
        data = self.create_request(self.unit, (self.kertas, 1))
        response = self.client.post(reverse('request-approve', args=[data['id']]), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Request.objects.get(pk=data['id']).status, Request.Status.PENDING)

    def test_insufficient_stock_conflict(self):
        data = self.create_request(self.unit, (self.kertas, 5), (self.pulpen, 11))

        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse('request-approve', args=[data['id']]), format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'insufficient_stock')
        self.assertIn('Pulpen', response.data['error'])
        self.assertEqual(Request.objects.get(pk=data['id']).status, Request.Status.PENDING)
        self.assertEqual(self.total_stock(self.kertas), 80)

    def test_grant_above_requested_is_bad_request(self):
        data = self.create_request(self.unit, (self.kertas, 5))
        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse('request-approve', args=[data['id']]), {
            'items': [{'id': data['items'][0]['id'], 'quantity_approved': 6}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.total_stock(self.kertas), 80)

    def test_approve_twice_is_conflict(self):
        data = self.create_request(self.unit, (self.kertas, 5))
        self.client.force_authenticate(self.admin)
        self.client.post(reverse('request-approve', args=[data['id']]), format='json')

        response = self.client.post(reverse('request-approve', args=[data['id']]), format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'invalid_state')
        self.assertEqual(self.total_stock(self.kertas), 75)

    def test_unknown_request(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse('request-approve', args=[999999]), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'request_not_found')

    def test_reject(self):
        data = self.create_request(self.unit, (self.kertas, 5))
        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse('request-reject', args=[data['id']]), {'reason': 'Anggaran habis'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'REJECTED')
        self.assertEqual(response.data['rejection_reason'], 'Anggaran habis')
        self.assertEqual(self.total_stock(self.kertas), 80)

    def test_integrity_fault_is_opaque(self):
        data = self.create_request(self.unit, (self.kertas, 90))
        Item.objects.filter(pk=self.kertas.pk).update(total_stock=100)

        self.client.force_authenticate(self.admin)
        with self.assertLogs('inventory', level='ERROR'):
            response = self.client.post(reverse('request-approve', args=[data['id']]), format='json')

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['code'], 'integrity_fault')
        self.assertNotIn('total_stock', response.data['error'])
        self.assertEqual(self.remaining(self.kertas), [50, 30])
        self.assertEqual(Request.objects.get(pk=data['id']).status, Request.Status.PENDING)


class ReturnAPITests(InventoryAPITestCase):
    def test_return_and_history(self):
        self.client.force_authenticate(self.unit)
        response = self.client.post(reverse('returns'), {'item': self.pulpen.pk, 'quantity': 2, 'notes': 'Tidak terpakai'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['transaction_type'], 'RETURN')
        self.assertEqual(self.total_stock(self.pulpen), 12)

        response = self.client.get(reverse('returns'))
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['quantity'], 2)

        self.client.force_authenticate(self.other_unit)
        self.assertEqual(self.client.get(reverse('returns')).data, [])

    def test_invalid_return(self):
        self.client.force_authenticate(self.unit)
        response = self.client.post(reverse('returns'), {'item': self.pulpen.pk, 'quantity': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class LogAndReportAPITests(InventoryAPITestCase):
    def test_transactions_admin_only(self):
        self.client.force_authenticate(self.unit)
        self.assertEqual(self.client.get(reverse('transaction-list')).status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.get(reverse('activitylog-list')).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse('transaction-list'), {'item': self.kertas.pk, 'type': 'in'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), Transaction.objects.filter(item=self.kertas).count())

    def test_fifo_report(self):
        self.client.force_authenticate(self.admin)
        self.assertEqual(self.client.get(reverse('report-fifo')).status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.get(reverse('report-fifo'), {'item': 999999}).status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.get(reverse('report-fifo'), {'item': self.kertas.pk})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_quantity'], 80)
        self.assertEqual(response.data['total_remaining'], 80)
        self.assertEqual(response.data['total_value'], '4475000.00')
        self.assertEqual([b['quantity'] for b in response.data['batches']], [50, 30])

    def test_fifo_export(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse('report-fifo-export'), {'item': self.kertas.pk})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')
        self.assertIn('Kartu_Stok_FIFO_Kertas_A4.xlsx', response['Content-Disposition'])
        ws = load_workbook(BytesIO(response.content)).active
        self.assertEqual(ws['A1'].value, 'KARTU STOK BARANG (METODE FIFO)')
        self.assertEqual(ws['B3'].value, 'Kertas A4')

    def test_low_stock_report(self):
        Item.objects.filter(pk=self.pulpen.pk).update(minimum_stock=10)
        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse('report-low-stock'))
        self.assertEqual([row['name'] for row in response.data], ['Pulpen'])


class PublicRequestAPITests(InventoryAPITestCase):
    def submit(self, **overrides):
        payload = {
            'name': 'Budi Tamu',
            'email': 'budi@example.com',
            'unit_kerja': 'UMUM',
            'items': [{'item_id': self.kertas.pk, 'quantity_requested': 2}],
            'notes': 'Untuk rapat',
        }
        payload.update(overrides)
        return self.client.post(reverse('request-public'), payload, format='json')

    def test_guest_submission_creates_passwordless_requester(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.submit()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['status'], 'PENDING')
        self.assertEqual(response.data['requester_name'], 'Budi Tamu')
        guest = User.objects.get(email='budi@example.com')
        self.assertEqual(guest.role, User.Role.UNIT_KERJA)
        self.assertEqual(guest.unit_kerja, 'UMUM')
        self.assertFalse(guest.has_usable_password())
        self.assertEqual(Request.objects.get(pk=response.data['id']).requester, guest)
        log = ActivityLog.objects.get(action='CREATE', entity='REQUEST')
        self.assertTrue(log.description.startswith('Request publik dari Budi Tamu (budi@example.com)'))
        self.assertEqual(self.total_stock(self.kertas), 80)

    def test_repeat_guest_reuses_account_and_updates_name(self):
        self.submit()
        response = self.submit(name='Budi Santoso', email='BUDI@example.com')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.filter(email__iexact='budi@example.com').count(), 1)
        self.assertEqual(User.objects.get(email='budi@example.com').first_name, 'Budi Santoso')
        self.assertEqual(Request.objects.filter(requester__email='budi@example.com').count(), 2)

    def test_registered_account_is_not_renamed(self):
        response = self.submit(name='Orang Lain', email='it@example.com')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.unit.refresh_from_db()
        self.assertEqual(self.unit.first_name, 'Staf')
        self.assertEqual(self.unit.unit_kerja, 'IT')
        self.assertEqual(Request.objects.get(pk=response.data['id']).requester, self.unit)

    def test_validation(self):
        for overrides in (
            {'email': 'bukan-email'},
            {'name': ''},
            {'unit_kerja': ''},
            {'items': []},
            {'items': [{'item_id': 999999, 'quantity_requested': 1}]},
        ):
            with self.subTest(overrides=overrides):
                response = self.submit(**overrides)
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(User.objects.filter(email='budi@example.com').exists())
        self.assertFalse(Request.objects.exists())

    def test_inactive_account_rejected(self):
        User.objects.filter(pk=self.unit.pk).update(is_active=False)
        response = self.submit(email='it@example.com')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Request.objects.exists())


class RequestTrackingAPITests(InventoryAPITestCase):
    def setUp(self):
        super().setUp()
        self.first = approvals.create_request(self.unit, [{'item': self.kertas, 'quantity_requested': 5}])
        self.second = approvals.create_request(self.unit, [{'item': self.pulpen, 'quantity_requested': 1}])
        approvals.create_request(self.other_unit, [{'item': self.pulpen, 'quantity_requested': 1}])
        approvals.reject_request(self.first.pk, approver=self.admin, reason='Stok dialihkan')

    def test_track_by_id_or_number(self):
        for value in (str(self.first.pk), self.first.request_number):
            with self.subTest(value=value):
                response = self.client.get(reverse('request-tracking'), {'id': value})
                self.assertEqual(response.status_code, status.HTTP_200_OK)
                self.assertEqual(response.data['status'], 'REJECTED')
                self.assertEqual(response.data['rejection_reason'], 'Stok dialihkan')
                self.assertNotIn('requester', response.data)
                self.assertNotIn('decided_by', response.data)

    def test_track_by_email(self):
        response = self.client.get(reverse('request-tracking'), {'email': 'IT@example.com'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data], [self.second.pk, self.first.pk])
        self.assertEqual(self.client.get(reverse('request-tracking'), {'email': 'x@example.com'}).data, [])

    def test_unknown_and_missing_parameters(self):
        response = self.client.get(reverse('request-tracking'), {'id': '999999'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'request_not_found')

        response = self.client.get(reverse('request-tracking'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'ID atau email harus disertakan')


class DashboardAPITests(InventoryAPITestCase):
    def test_admin_only(self):
        self.client.force_authenticate(self.unit)
        self.assertEqual(self.client.get(reverse('dashboard')).status_code, status.HTTP_403_FORBIDDEN)

    def test_counts(self):
        Item.objects.filter(pk=self.pulpen.pk).update(minimum_stock=10)
        approved = approvals.create_request(self.unit, [{'item': self.kertas, 'quantity_requested': 10}])
        pending = approvals.create_request(self.other_unit, [{'item': self.pulpen, 'quantity_requested': 1}])
        approvals.approve_request(approved.pk, approver=self.admin)

        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse('dashboard'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_items'], 2)
        self.assertEqual(response.data['total_stock'], 80)
        self.assertEqual(response.data['low_stock_items'], 1)
        self.assertEqual(response.data['pending_requests'], 1)
        self.assertEqual(response.data['approved_requests'], 1)
        self.assertEqual(response.data['rejected_requests'], 0)
        self.assertEqual([row['id'] for row in response.data['recent_requests']], [pending.pk, approved.pk])
