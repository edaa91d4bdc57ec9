from __future__ import annotations

from django.test import TestCase

from crm.models import Client, ClientType


class ClientTests(TestCase):
    def test_display_name_prefers_company(self):
        self.assertEqual(Client(company_name=" Acme GmbH ", first_name="Jo").display_name(), "Acme GmbH")
        person = Client(client_type=ClientType.INDIVIDUAL, first_name="Jo", last_name="Berger")
        self.assertEqual(person.display_name(), "Jo Berger")

    def test_delete_is_soft(self):
        c = Client.objects.create(company_name="Acme GmbH")
        c.delete()
        self.assertFalse(Client.objects.filter(pk=c.pk).exists())
        self.assertIsNotNone(Client.all_objects.get(pk=c.pk).deleted_at)

        Client.objects.create(company_name="Other")
        Client.objects.all().delete()
        self.assertEqual(Client.objects.count(), 0)
        self.assertEqual(Client.all_objects.count(), 2)
