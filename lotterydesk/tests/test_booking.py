import unittest
from unittest import mock

from lotterydesk.errors import IdentityStoreError, NotificationError, RoundNotFoundError, ValidationError
from lotterydesk.notifications import LoggingNotificationSender

from support import DatabaseTestCase


class BookingServiceTests(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.round_id = self.create_round(250)
        self.notifier = LoggingNotificationSender()

    def _service(self, notifier=None, policy="strict"):
        return self.backend.booking.BookingService(
            engine=self.allocation_engine(policy=policy),
            notifier=notifier or self.notifier,
        )

    def test_book_tickets_sends_confirmation(self) -> None:
        profile = {"email": "ann@example.com", "fullName": "Ann Lee"}
        result = self._service().book_tickets(self.round_id, ["001", "002"], profile)

        self.assertEqual(result.message, f"Successfully booked tickets for lottery {self.round_id}")
        self.assertEqual(result.ticket_numbers, ("001", "002"))
        self.assertEqual(len(result.updated_available), 248)
        self.assertEqual(result.warnings, [])

        self.assertEqual(len(self.notifier.sent), 1)
        message = self.notifier.sent[0]
        self.assertEqual(message.to, "ann@example.com")
        self.assertEqual(message.subject, "Lottery tickets purchase confirmation for ann@example.com")
        self.assertEqual(
            message.body,
            "Dear Ann Lee, \n\nThank you for purchasing the following lottery tickets: 001, 002."
            "\n\nRegards,\nThe Lottery Team",
        )

    def test_merge_law_through_service(self) -> None:
        service = self._service()
        profile = {"email": "ann@example.com", "fullName": "Ann Lee"}
        service.book_tickets(self.round_id, ["001", "002"], profile)
        result = service.book_tickets(self.round_id, ["002", "003"], profile)

        self.assertEqual(result.ticket_numbers, ("002", "003"))
        self.assertEqual(result.warnings, [])
        view = self.backend.views.compose_view(self.round_id)
        booked = [(r.ticket_number, r.user) for r in view.tickets if not r.availability]
        self.assertEqual(
            booked,
            [(n, "Ann Lee (ann@example.com)") for n in ("001", "002", "003")],
        )

    def test_email_only_profile_keeps_stored_name(self) -> None:
        service = self._service()
        service.book_tickets(self.round_id, ["001"], {"email": "ann@example.com", "fullName": "Ann Lee"})
        service.book_tickets(self.round_id, ["004"], {"email": "ann@example.com"})

        view = self.backend.views.compose_view(self.round_id)
        users = {r.user for r in view.tickets if not r.availability}
        self.assertEqual(users, {"Ann Lee (ann@example.com)"})
        self.assertTrue(self.notifier.sent[-1].body.startswith("Dear Ann Lee, "))

    def test_notification_failure_keeps_booking(self) -> None:
        notifier = mock.AsyncMock()
        notifier.send.side_effect = NotificationError("relay down")

        result = self._service(notifier=notifier).book_tickets(
            self.round_id, ["010"], {"email": "bob@example.com", "fullName": "Bob"}
        )

        self.assertEqual(result.warnings, ["Confirmation email could not be sent: relay down"])
        self.assertNotIn("010", self.backend.rounds.RoundRepository().get_round(self.round_id).get_available())
        notifier.send.assert_awaited_once()

    def test_unknown_round_creates_nothing(self) -> None:
        with self.assertRaises(RoundNotFoundError):
            self._service().book_tickets(99, ["001"], {"email": "ann@example.com"})

        with self.backend.db.session_scope() as session:
            self.assertEqual(session.query(self.backend.models.User).count(), 0)
        self.assertEqual(list(self.notifier.sent), [])
        self.assertEqual(len(self.backend.rounds.RoundRepository().get_round(self.round_id).get_available()), 250)

    def test_identity_failure_prevents_allocation(self) -> None:
        identities = mock.Mock()
        identities.resolve.side_effect = IdentityStoreError("store offline")
        service = self.backend.booking.BookingService(
            engine=self.allocation_engine(), notifier=self.notifier, identities=identities
        )

        with self.assertRaises(IdentityStoreError):
            service.book_tickets(self.round_id, ["001"], {"email": "ann@example.com"})

        self.assertIn("001", self.backend.rounds.RoundRepository().get_round(self.round_id).get_available())
        self.assertEqual(list(self.notifier.sent), [])

    def test_invalid_requests_are_rejected_early(self) -> None:
        service = self._service()
        with self.assertRaises(ValidationError):
            service.book_tickets(self.round_id, [], {"email": "ann@example.com"})
        with self.assertRaises(ValidationError):
            service.book_tickets(self.round_id, ["001"], {"fullName": "Nobody"})

    def test_sell_tickets_records_sale(self) -> None:
        result = self._service().sell_tickets(
            self.round_id, ["100"], {"email": "cat@example.com", "fullName": "Cat"}
        )

        self.assertEqual(result.message, f"Successfully sold tickets for lottery {self.round_id}")
        view = self.backend.views.compose_view(self.round_id)
        self.assertEqual(view.sold_count, 1)
        self.assertEqual(view.booked_count, 0)


if __name__ == "__main__":
    unittest.main()
