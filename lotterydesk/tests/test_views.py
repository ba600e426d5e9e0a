import unittest

from lotterydesk.errors import RoundNotFoundError

from support import DatabaseTestCase


class ComposeViewTests(DatabaseTestCase):
    def test_booked_available_and_sold_records(self) -> None:
        round_id = self.create_round(3)
        ann = self.resolve("ann@example.com", "Ann Lee")
        bob = self.resolve("bob@example.com", "Bob Ray")
        engine = self.allocation_engine()
        engine.book(round_id, ann.id, ["1"])
        engine.sell(round_id, bob.id, ["2"])

        view = self.backend.views.compose_view()

        self.assertEqual(view.booked_count, 1)
        self.assertEqual(view.sold_count, 1)
        self.assertEqual(
            [record.to_dict() for record in view.tickets],
            [
                {"lotteryNo": 1, "ticketNumber": "1", "availability": False, "sold": False, "user": "Ann Lee (ann@example.com)"},
                {"lotteryNo": 1, "ticketNumber": "3", "availability": True, "sold": False, "user": None},
                {"lotteryNo": 1, "ticketNumber": "2", "availability": False, "sold": True, "user": "Bob Ray (bob@example.com)"},
            ],
        )

    def test_counts_expand_ticket_numbers(self) -> None:
        round_id = self.create_round(20)
        ann = self.resolve("ann@example.com")
        bob = self.resolve("bob@example.com")
        engine = self.allocation_engine()
        engine.book(round_id, ann.id, ["01", "02", "03"])
        engine.book(round_id, bob.id, ["04"])
        engine.sell(round_id, bob.id, ["05", "06"])

        view = self.backend.views.compose_view(round_id)

        self.assertEqual(view.booked_count, 4)
        self.assertEqual(view.sold_count, 2)
        self.assertEqual(len(view.tickets), 20)
        self.assertEqual(len({record.ticket_number for record in view.tickets}), 20)
        payload = view.to_dict()
        self.assertEqual(payload["bookedCount"], 4)
        self.assertEqual(payload["soldCount"], 2)

    def test_missing_user_renders_as_none(self) -> None:
        round_id = self.create_round(2)
        models = self.backend.models
        with self.backend.db.session_scope() as session:
            allocation = models.Allocation(round_id=round_id, user_id=None, kind="booking")
            allocation.set_numbers(["1"])
            session.add(allocation)

        view = self.backend.views.compose_view(round_id)
        self.assertIsNone(view.tickets[0].user)
        self.assertEqual(view.tickets[0].ticket_number, "1")

    def test_specific_round_is_selectable(self) -> None:
        first = self.create_round(2)
        self.create_round(5)

        self.assertEqual(len(self.backend.views.compose_view(first).tickets), 2)
        self.assertEqual(len(self.backend.views.compose_view().tickets), 5)

    def test_no_round_is_not_found(self) -> None:
        with self.assertRaises(RoundNotFoundError):
            self.backend.views.compose_view()
        self.create_round(1)
        with self.assertRaises(RoundNotFoundError):
            self.backend.views.compose_view(7)


if __name__ == "__main__":
    unittest.main()
