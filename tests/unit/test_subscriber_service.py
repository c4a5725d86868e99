"""
Unit tests for newsdrip/subscribers/service.py

Tests public subscription (bot checks, contact validation, reactivation),
preference management, unsubscribe and admin edits.
"""

import unittest
from unittest.mock import AsyncMock, Mock

from newsdrip.errors import AdapterFailure, NotFound, ValidationFailure
from newsdrip.models.requests import (
    PreferencesUpdateRequest,
    SubscribeRequest,
    SubscriberUpdateRequest,
)
from newsdrip.subscribers.service import SubscriberService
from tests.fixtures.factories import create_test_category, create_test_subscriber
from tests.fixtures.memory_store import MemoryCategoryRepository, MemorySubscriberRepository


def build_service(subscribers=None):
    categories = MemoryCategoryRepository([
        create_test_category(1, "Technology"),
        create_test_category(2, "Business"),
    ])
    store = MemorySubscriberRepository(categories, subscribers)
    return SubscriberService(store, categories), store


def subscribe_request(**overrides):
    data = {
        "contact_method": "email",
        "email": "alice@example.com",
        "category_ids": [1],
        "submission_time": 8000,
    }
    data.update(overrides)
    return SubscribeRequest(**data)


class TestSubscribe(unittest.IsolatedAsyncioTestCase):
    """Tests for SubscriberService.subscribe()"""

    async def test_creates_email_subscriber_with_tokens(self):
        service, store = build_service()

        result = await service.subscribe(subscribe_request(email="Alice@Example.com"))

        subscriber = result.subscriber
        self.assertEqual(subscriber.email, "alice@example.com")
        self.assertEqual(subscriber.category_ids, [1])
        self.assertGreaterEqual(len(subscriber.unsubscribe_token), 32)
        self.assertGreaterEqual(len(subscriber.preferences_token), 32)
        self.assertNotEqual(subscriber.unsubscribe_token, subscriber.preferences_token)
        self.assertIn(subscriber.id, store.items)

    async def test_creates_sms_subscriber(self):
        service, _ = build_service()

        result = await service.subscribe(subscribe_request(
            contact_method="sms", email=None, phone="+1 (555) 123-4567"
        ))

        self.assertEqual(result.subscriber.phone, "+15551234567")
        self.assertEqual(result.subscriber.contact_method, "sms")

    async def test_email_method_requires_email(self):
        service, store = build_service()

        with self.assertRaises(ValidationFailure):
            await service.subscribe(subscribe_request(email=None))
        self.assertEqual(store.items, {})

    async def test_sms_method_requires_valid_phone(self):
        service, _ = build_service()

        with self.assertRaises(ValidationFailure):
            await service.subscribe(subscribe_request(contact_method="sms", email=None, phone=None))
        with self.assertRaises(ValidationFailure):
            await service.subscribe(subscribe_request(contact_method="sms", email=None, phone="12"))

    async def test_honeypot_rejected(self):
        service, _ = build_service()

        with self.assertRaises(ValidationFailure):
            await service.subscribe(subscribe_request(website="http://spam.example.com"))
        with self.assertRaises(ValidationFailure):
            await service.subscribe(subscribe_request(confirm_subscription=True))

    async def test_fast_submission_rejected(self):
        service, _ = build_service()

        with self.assertRaises(ValidationFailure):
            await service.subscribe(subscribe_request(submission_time=500))

    async def test_disposable_email_rejected(self):
        service, _ = build_service()

        with self.assertRaises(ValidationFailure):
            await service.subscribe(subscribe_request(email="alice@mailinator.com"))

    async def test_unknown_categories_rejected(self):
        service, _ = build_service()

        with self.assertRaises(ValidationFailure):
            await service.subscribe(subscribe_request(category_ids=[99]))

    async def test_unknown_categories_dropped(self):
        service, _ = build_service()

        result = await service.subscribe(subscribe_request(category_ids=[1, 99]))

        self.assertEqual(result.subscriber.category_ids, [1])

    async def test_active_duplicate_rejected(self):
        service, _ = build_service([create_test_subscriber(1, email="alice@example.com")])

        with self.assertRaises(ValidationFailure):
            await service.subscribe(subscribe_request())

    async def test_inactive_duplicate_reactivated(self):
        service, store = build_service([
            create_test_subscriber(1, email="alice@example.com", is_active=False, category_ids=[])
        ])

        result = await service.subscribe(subscribe_request(category_ids=[2]))

        self.assertEqual(result.subscriber.id, 1)
        self.assertTrue(result.subscriber.is_active)
        self.assertEqual(result.subscriber.category_ids, [2])
        self.assertEqual(len(store.items), 1)


class TestPreferences(unittest.IsolatedAsyncioTestCase):
    """Tests for get_preferences(), update_preferences() and unsubscribe()"""

    async def asyncSetUp(self):
        self.service, self.store = build_service([
            create_test_subscriber(1, email="alice@example.com", category_ids=[1])
        ])

    async def test_get_by_token(self):
        details = await self.service.get_preferences("prefs-1")

        self.assertEqual(details.id, 1)
        self.assertEqual([c.name for c in details.categories], ["Technology"])

    async def test_bad_token(self):
        with self.assertRaises(NotFound):
            await self.service.get_preferences("nope")
        with self.assertRaises(NotFound):
            await self.service.unsubscribe("nope")

    async def test_update_preferences(self):
        details = await self.service.update_preferences("prefs-1", PreferencesUpdateRequest(
            contact_method="sms",
            phone="+15551234567",
            frequency="daily",
            category_ids=[1, 2],
        ))

        self.assertEqual(details.contact_method, "sms")
        self.assertEqual(details.frequency, "daily")
        self.assertEqual(sorted(details.category_ids), [1, 2])

    async def test_update_preferences_requires_contact(self):
        with self.assertRaises(ValidationFailure):
            await self.service.update_preferences("prefs-1", PreferencesUpdateRequest(
                contact_method="sms", frequency="weekly", category_ids=[1],
            ))

    async def test_unsubscribe_deactivates(self):
        subscriber = await self.service.unsubscribe("unsub-1")

        self.assertFalse(subscriber.is_active)
        self.assertEqual(subscriber.category_ids, [])


class TestSubscriberEmails(unittest.IsolatedAsyncioTestCase):
    """Welcome and preferences-updated emails"""

    def setUp(self):
        categories = MemoryCategoryRepository([
            create_test_category(1, "Technology"),
            create_test_category(2, "Business"),
        ])
        self.store = MemorySubscriberRepository(categories, [
            create_test_subscriber(1, email="alice@example.com", category_ids=[1]),
        ])
        self.mailer = Mock()
        self.mailer.from_name = "NewsDrip"
        self.mailer.send_email = AsyncMock(return_value={"success": True, "message_id": "ses-1"})
        self.service = SubscriberService(
            self.store, categories, mailer=self.mailer,
            base_url="https://api.newsdrip.io", frontend_url="https://newsdrip.io"
        )

    async def test_welcome_email_after_subscribe(self):
        result = await self.service.subscribe(subscribe_request(email="bob@example.com", category_ids=[1, 2]))

        to_email, subject, html_content, text_content = self.mailer.send_email.call_args.args
        token = result.subscriber.preferences_token
        self.assertEqual(to_email, "bob@example.com")
        self.assertEqual(subject, "Welcome to NewsDrip!")
        self.assertIn(f"https://newsdrip.io/preferences?token={token}", html_content)
        self.assertIn(
            f"https://api.newsdrip.io/api/unsubscribe/{result.subscriber.unsubscribe_token}", text_content
        )
        self.assertIn("Technology, Business", text_content)
        self.assertIn("Check your inbox", result.message)

    async def test_welcome_failure_still_subscribes(self):
        self.mailer.send_email.side_effect = AdapterFailure("provider_error", "MessageRejected")

        result = await self.service.subscribe(subscribe_request(email="bob@example.com"))

        self.assertIn(result.subscriber.id, self.store.items)
        self.assertEqual(result.message, "Successfully subscribed!")

    async def test_sms_subscriber_gets_no_email(self):
        result = await self.service.subscribe(subscribe_request(
            contact_method="sms", email=None, phone="+15551234567",
        ))

        self.mailer.send_email.assert_not_called()
        self.assertEqual(result.message, "Successfully subscribed!")

    async def test_preferences_update_confirmed_by_email(self):
        await self.service.update_preferences("prefs-1", PreferencesUpdateRequest(
            contact_method="email", email="alice@example.com", frequency="daily", category_ids=[2],
        ))

        to_email, subject, _, text_content = self.mailer.send_email.call_args.args
        self.assertEqual(to_email, "alice@example.com")
        self.assertIn("updated", subject)
        self.assertIn("- Frequency: daily", text_content)

    async def test_deactivating_preferences_sends_nothing(self):
        await self.service.update_preferences("prefs-1", PreferencesUpdateRequest(
            contact_method="email", email="alice@example.com", frequency="weekly",
            category_ids=[1], is_active=False,
        ))

        self.mailer.send_email.assert_not_called()

    async def test_confirmation_failure_still_updates(self):
        self.mailer.send_email.side_effect = RuntimeError("boom")

        details = await self.service.update_preferences("prefs-1", PreferencesUpdateRequest(
            contact_method="email", email="alice@example.com", frequency="monthly", category_ids=[1],
        ))

        self.assertEqual(details.frequency, "monthly")


class TestAdminSubscriberManagement(unittest.IsolatedAsyncioTestCase):
    """Tests for list_subscribers(), update_subscriber() and delete_subscriber()"""

    async def asyncSetUp(self):
        self.service, self.store = build_service([
            create_test_subscriber(1, email="alice@example.com"),
            create_test_subscriber(2, email="bob@example.com", category_ids=[2]),
        ])

    async def test_list(self):
        details = await self.service.list_subscribers()

        self.assertEqual(len(details), 2)
        self.assertEqual(details[1].categories[0].name, "Business")

    async def test_update_fields_and_categories(self):
        details = await self.service.update_subscriber(1, SubscriberUpdateRequest(
            frequency="monthly", is_active=False, category_ids=[2]
        ))

        self.assertEqual(details.frequency, "monthly")
        self.assertFalse(details.is_active)
        self.assertEqual(details.category_ids, [2])
        self.assertEqual(details.email, "alice@example.com")

    async def test_switching_to_sms_needs_phone(self):
        with self.assertRaises(ValidationFailure):
            await self.service.update_subscriber(1, SubscriberUpdateRequest(contact_method="sms"))

    async def test_unknown_subscriber(self):
        with self.assertRaises(NotFound):
            await self.service.update_subscriber(99, SubscriberUpdateRequest(is_active=True))
        with self.assertRaises(NotFound):
            await self.service.delete_subscriber(99)

    async def test_delete(self):
        await self.service.delete_subscriber(2)

        self.assertNotIn(2, self.store.items)


if __name__ == "__main__":
    unittest.main()
