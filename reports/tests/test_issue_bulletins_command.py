from unittest.mock import patch

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from reports.models import Bulletin

from .factories import create_year


@patch("reports.management.commands.issue_bulletins.mark_pending")
class IssueBulletinsCommandTests(TestCase):
    def setUp(self):
        self.ctx = create_year()

    @patch("reports.management.commands.issue_bulletins.issue_bulletin.apply_async")
    def test_reuses_latest_bulletin_and_enqueues(self, mock_apply_async, mock_pending):
        awa, ibrahim, t1 = self.ctx["awa"], self.ctx["ibrahim"], self.ctx["t1"]
        # Deux bulletins existants pour Awa (duplicata), aucun pour Ibrahim
        Bulletin.objects.create(student=awa, term=t1, status="READY", payload={"AVG": "1"})
        latest = Bulletin.objects.create(student=awa, term=t1, status="READY", payload={"AVG": "2"})

        with self.assertLogs("reports.management.commands.issue_bulletins", level="WARNING"):
            call_command(
                "issue_bulletins",
                "--term-id",
                str(t1.id),
                "--class-id",
                str(self.ctx["klass"].id),
                "--batch-size",
                "1",
                "--queue",
                "bulletins_bulk",
            )

        self.assertEqual(Bulletin.objects.filter(student=awa, term=t1).count(), 2)
        self.assertEqual(Bulletin.objects.filter(student=ibrahim, term=t1).count(), 1)
        latest.refresh_from_db()
        self.assertEqual(latest.status, "PENDING")
        self.assertEqual(latest.payload, {})

        # apply_async appelé pour chaque élève, sur la file demandée
        self.assertEqual(mock_apply_async.call_count, 2)
        for call in mock_apply_async.call_args_list:
            self.assertEqual(call.kwargs.get("queue"), "bulletins_bulk")
        self.assertEqual(mock_pending.call_count, 2)

    @patch("reports.management.commands.issue_bulletins.issue_bulletin.apply_async")
    def test_student_filter(self, mock_apply_async, mock_pending):
        call_command("issue_bulletins", "--term-id", str(self.ctx["t1"].id), "--student-ids", str(self.ctx["ibrahim"].id))
        bulletin = Bulletin.objects.get()
        self.assertEqual(bulletin.student_id, self.ctx["ibrahim"].id)
        mock_apply_async.assert_called_once_with(args=[bulletin.id], queue="bulletins")

    def test_unknown_term(self, mock_pending):
        with self.assertRaises(CommandError):
            call_command("issue_bulletins", "--term-id", "9999")

    def test_invalid_batch_size(self, mock_pending):
        with self.assertRaises(CommandError):
            call_command("issue_bulletins", "--term-id", str(self.ctx["t1"].id), "--batch-size", "0")

    def test_class_of_another_year(self, mock_pending):
        other = create_year("2024-2025")
        with self.assertRaises(CommandError):
            call_command("issue_bulletins", "--term-id", str(self.ctx["t1"].id), "--class-id", str(other["klass"].id))
