from unittest.mock import MagicMock, patch

import pytest

from clinicbill.events import SessionCompleted


@pytest.fixture()
def mock_services():
    with patch("clinicbill.cli.app.build_services") as mock_build:
        services = MagicMock()
        mock_build.return_value = services
        yield services


class TestBuildServices:
    @patch("clinicbill.cli.app.get_audit_log_repository")
    @patch("clinicbill.cli.app.get_user_directory")
    @patch("clinicbill.cli.app.get_session_provider")
    @patch("clinicbill.cli.app.get_payment_repository")
    @patch("clinicbill.cli.app.get_invoice_repository")
    @patch("clinicbill.cli.app.get_session_billing_repository")
    def test_returns_wired_services(self, *_):
        from clinicbill.cli.app import build_services
        from clinicbill.services.audit_service import AuditService
        from clinicbill.services.billing_service import BillingService
        from clinicbill.services.invoice_service import InvoiceService
        from clinicbill.services.payment_service import PaymentService

        services = build_services(source="test")

        assert isinstance(services.billing, BillingService)
        assert isinstance(services.invoice, InvoiceService)
        assert isinstance(services.payment, PaymentService)
        assert isinstance(services.audit, AuditService)
        assert services.audit.source == "test"
        assert services.billing.outbox is services.dispatcher.outbox
        assert services.invoice.outbox is services.dispatcher.outbox
        assert services.payment.outbox is services.dispatcher.outbox

    def test_completed_session_is_billed_and_audited(
        self,
        billing_repo,
        invoice_repo,
        payment_repo,
        session_provider,
        user_directory,
        audit_repo,
        make_session,
    ):
        from clinicbill.cli.app import build_services

        with (
            patch("clinicbill.cli.app.get_session_billing_repository", return_value=billing_repo),
            patch("clinicbill.cli.app.get_invoice_repository", return_value=invoice_repo),
            patch("clinicbill.cli.app.get_payment_repository", return_value=payment_repo),
            patch("clinicbill.cli.app.get_session_provider", return_value=session_provider),
            patch("clinicbill.cli.app.get_user_directory", return_value=user_directory),
            patch("clinicbill.cli.app.get_audit_log_repository", return_value=audit_repo),
        ):
            services = build_services()

        session_id = make_session()
        services.dispatcher.outbox.append(SessionCompleted(session_id=session_id))

        # SessionCompleted, then the SessionBillingCalculated it produced.
        assert services.dispatcher.dispatch_pending() == 2
        billing = services.billing.get_billing_for_session(session_id).unwrap()
        logs = services.audit.list_by_entity("session_billing", str(billing.id))
        assert [log.event_type for log in logs] == ["billing.create"]
        assert logs[0].source == "cli"


class TestMainMenu:
    @patch("clinicbill.cli.app.questionary")
    def test_exit_immediately(self, mock_q, mock_services):
        from clinicbill.cli.app import EXIT, main_menu

        mock_q.select.return_value.ask.return_value = EXIT
        main_menu()
        mock_q.select.return_value.ask.assert_called_once()

    @patch("clinicbill.cli.app.questionary")
    def test_none_exits(self, mock_q, mock_services):
        from clinicbill.cli.app import main_menu

        mock_q.select.return_value.ask.return_value = None
        main_menu()

    @pytest.mark.parametrize(
        ("choice", "handler"),
        [
            ("LIST_BILLINGS", "list_billings_menu"),
            ("BILL_SESSION", "create_billing_menu"),
            ("APPLY_DISCOUNT", "apply_discount_menu"),
            ("LIST_INVOICES", "list_invoices_menu"),
            ("CREATE_INVOICE", "create_invoice_menu"),
            ("CONVERT_INVOICE", "convert_invoice_menu"),
            ("PROCESS_PAYMENT", "process_payment_menu"),
            ("LIST_PAYMENTS", "list_payments_menu"),
            ("AUDIT_TRAIL", "audit_trail_menu"),
        ],
    )
    def test_dispatches_to_handler_then_delivers_events(self, choice, handler, mock_services):
        from clinicbill.cli import app

        with patch.object(app, "questionary") as mock_q, patch.object(app, handler) as mock_handler:
            mock_q.select.return_value.ask.side_effect = [getattr(app, choice), app.EXIT]
            app.main_menu()

        mock_handler.assert_called_once()
        mock_services.dispatcher.dispatch_pending.assert_called_once()


class TestMain:
    @patch("clinicbill.__main__.close_connection")
    @patch("clinicbill.__main__.main_menu")
    @patch("clinicbill.__main__.initialize_db")
    @patch("clinicbill.__main__.configure_logging")
    def test_startup_order(self, mock_logging, mock_init_db, mock_menu, mock_close):
        from clinicbill.__main__ import main

        calls = []
        mock_logging.side_effect = lambda: calls.append("logging")
        mock_init_db.side_effect = lambda: calls.append("db")
        mock_menu.side_effect = lambda: calls.append("menu")
        mock_close.side_effect = lambda: calls.append("close")

        main()

        assert calls == ["logging", "db", "menu", "close"]
