from django.test import TestCase

from ..exceptions import ConflictError, NotFound
from ..models import AuditLog, Client
from ..services import delete_client
from .utils import make_client, make_invoice, make_project, make_user


class DeleteClientTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.client_obj = make_client(self.user)

    def test_unused_client_is_deleted_and_audited(self):
        delete_client(self.user, self.client_obj.pk)

        self.assertFalse(Client.objects.filter(pk=self.client_obj.pk).exists())
        self.assertTrue(
            AuditLog.objects.filter(action="delete", object_id=str(self.client_obj.pk)).exists()
        )

    def test_client_with_projects_is_kept(self):
        make_project(self.user, self.client_obj)
        with self.assertRaises(ConflictError):
            delete_client(self.user, self.client_obj.pk)
        self.assertTrue(Client.objects.filter(pk=self.client_obj.pk).exists())

    def test_client_with_invoices_is_kept(self):
        make_invoice(self.user, self.client_obj)
        with self.assertRaises(ConflictError):
            delete_client(self.user, self.client_obj.pk)

    def test_other_owners_client_is_not_found(self):
        with self.assertRaises(NotFound):
            delete_client(make_user("bob"), self.client_obj.pk)
