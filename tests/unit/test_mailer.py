"""
Unit tests for newsdrip/services/mailer.py

Tests that the SES client gives up inside the per-send deadline and that
the app wiring shares one bounded mailer.
"""

import unittest
from unittest.mock import Mock

from newsdrip.config import Settings
from newsdrip.dependencies import build_services
from newsdrip.services.mailer import SesMailer, build_ses_client


class TestBuildSesClient(unittest.TestCase):
    """Tests for build_ses_client()"""

    def test_socket_timeouts_end_before_deadline(self):
        """A single attempt cannot outlive the send deadline"""
        client = build_ses_client(send_timeout=3.0, region="us-east-1")

        config = client.meta.config
        self.assertEqual(config.connect_timeout, 1.0)
        self.assertEqual(config.read_timeout, 1.0)
        self.assertLess(config.connect_timeout + config.read_timeout, 3.0)

    def test_retries_disabled(self):
        client = build_ses_client(send_timeout=3.0, region="us-east-1")

        self.assertEqual(client.meta.config.retries["total_max_attempts"], 1)


class TestServiceWiring(unittest.TestCase):

    def test_email_adapter_and_notices_share_bounded_mailer(self):
        config = Settings(delivery_timeout_seconds=6.0)

        services = build_services(Mock(), config=config)

        mailer = services.adapters["email"].mailer
        self.assertIsInstance(mailer, SesMailer)
        self.assertIs(services.subscribers.mailer, mailer)
        self.assertEqual(mailer.ses_client.meta.config.read_timeout, 2.0)
        self.assertEqual(services.orchestrator.send_timeout, 6.0)


if __name__ == "__main__":
    unittest.main()
