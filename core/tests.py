"""
Tests for the error envelope and shared API plumbing.
"""
from unittest.mock import patch

from django.test import TestCase
from rest_framework.exceptions import ErrorDetail, NotAuthenticated

from core.exceptions import (
    ConflictError,
    envelope_exception_handler,
    flatten_error_detail,
)


class FlattenErrorDetailTestCase(TestCase):

    def test_nested_list_path(self):
        detail = {'orders': [{}, {'items': [{'quantity': [ErrorDetail('Too small.')]}]}]}

        self.assertEqual(flatten_error_detail(detail), 'orders.1.items.0.quantity: Too small.')

    def test_non_field_errors_drop_prefix(self):
        detail = {'non_field_errors': [ErrorDetail('Bad combination.')]}

        self.assertEqual(flatten_error_detail(detail), 'Bad combination.')

    def test_plain_message(self):
        self.assertEqual(flatten_error_detail('Not found.'), 'Not found.')


class EnvelopeExceptionHandlerTestCase(TestCase):

    def test_service_error(self):
        response = envelope_exception_handler(ConflictError('Taken'), {})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data, {'success': False, 'error': True, 'status': 409, 'message': 'Taken'})

    def test_drf_error_keeps_detail_message(self):
        response = envelope_exception_handler(NotAuthenticated('Authentication required'), {})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['message'], 'Authentication required')

    def test_unexpected_error_is_logged_and_hidden(self):
        with self.assertLogs('core.exceptions', level='ERROR'):
            response = envelope_exception_handler(RuntimeError('boom'), {})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data['message'], 'Internal Server Error')


class EndpointTestCase(TestCase):

    def test_health(self):
        response = self.client.get('/health/')

        self.assertEqual(response.json()['status'], 'healthy')

    def test_unknown_route_envelope(self):
        response = self.client.get('/api/does-not-exist/')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {
            'success': False, 'error': True, 'status': 404, 'message': '404 Not Found'
        })

    def test_unknown_object_envelope(self):
        response = self.client.get('/api/stores/99999/')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['success'], False)

    def test_view_crash_returns_500_envelope(self):
        with patch('catalog.views.CategoryListCreateView.get_queryset', side_effect=RuntimeError('db gone')):
            with self.assertLogs('core.exceptions', level='ERROR'):
                response = self.client.get('/api/categories/')

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['message'], 'Internal Server Error')
