from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APITestCase

from inventory.models import ActivityLog

User = get_user_model()


class CustomUserManagerTests(TestCase):
    def test_create_user(self):
        user = User.objects.create_user('Staf@Example.COM', 'rahasia123', first_name='Staf', last_name='IT')
        self.assertEqual(user.email, 'Staf@example.com')
        self.assertEqual(user.role, User.Role.UNIT_KERJA)
        self.assertTrue(user.is_unit_kerja)
        self.assertFalse(user.is_admin)
        self.assertTrue(user.check_password('rahasia123'))

    def test_create_user_requires_email(self):
        with self.assertRaises(ValueError):
            User.objects.create_user('', 'rahasia123')

    def test_create_superuser_is_admin(self):
        user = User.objects.create_superuser('root@example.com', 'rahasia123')
        self.assertEqual(user.role, User.Role.ADMIN)
        self.assertTrue(user.is_admin)
        self.assertTrue(user.is_staff)

    def test_create_superuser_rejects_non_staff(self):
        with self.assertRaises(ValueError):
            User.objects.create_superuser('root@example.com', 'rahasia123', is_staff=False)


class AuthAPITests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            'it@example.com', 'rahasia123', first_name='Staf', last_name='IT', unit_kerja='IT',
        )

    def login(self, email='it@example.com', password='rahasia123'):
        return self.client.post(reverse('auth-login'), {'email': email, 'password': password}, format='json')

    def test_login_returns_token(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.login()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['token'], Token.objects.get(user=self.user).key)
        self.assertEqual(response.data['user']['email'], 'it@example.com')
        self.assertEqual(response.data['user']['full_name'], 'Staf IT')
        log = ActivityLog.objects.get(action='LOGIN')
        self.assertEqual(log.user, self.user)
        self.assertEqual(log.entity, 'USER')

    def test_login_wrong_password(self):
        response = self.login(password='salah')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)
        self.assertFalse(Token.objects.exists())

    def test_login_inactive_user(self):
        User.objects.filter(pk=self.user.pk).update(is_active=False)
        response = self.login()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_token_authenticates_and_logout_revokes(self):
        token = self.login().data['token']
        self.client.credentials(HTTP_AUTHORIZATION=f'Token {token}')

        response = self.client.get(reverse('user-me'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['unit_kerja'], 'IT')

        response = self.client.post(reverse('auth-logout'))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get(reverse('user-me')).status_code, status.HTTP_401_UNAUTHORIZED)

    def test_user_list_admin_only(self):
        self.client.force_authenticate(self.user)
        self.assertEqual(self.client.get(reverse('user-list')).status_code, status.HTTP_403_FORBIDDEN)

        admin = User.objects.create_superuser('admin@example.com', 'rahasia123')
        self.client.force_authenticate(admin)
        response = self.client.get(reverse('user-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['email'] for row in response.data], ['admin@example.com', 'it@example.com'])
