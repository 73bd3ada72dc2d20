from clinicbill.repositories.base import (
    AuditLogRepository,
    InvoiceRepository,
    PaymentRepository,
    SessionBillingRepository,
    SessionProvider,
    UserDirectory,
)


def get_session_billing_repository() -> SessionBillingRepository:
    from clinicbill.db import get_connection
    from clinicbill.repositories.sqlalchemy import SQLAlchemySessionBillingRepository

    return SQLAlchemySessionBillingRepository(get_connection())


def get_invoice_repository() -> InvoiceRepository:
    from clinicbill.db import get_connection
    from clinicbill.repositories.sqlalchemy import SQLAlchemyInvoiceRepository

    return SQLAlchemyInvoiceRepository(get_connection())


def get_payment_repository() -> PaymentRepository:
    from clinicbill.db import get_connection
    from clinicbill.repositories.sqlalchemy import SQLAlchemyPaymentRepository

    return SQLAlchemyPaymentRepository(get_connection())


def get_session_provider() -> SessionProvider:
    from clinicbill.db import get_connection
    from clinicbill.repositories.sqlalchemy import SQLAlchemySessionProvider

    return SQLAlchemySessionProvider(get_connection())


def get_user_directory() -> UserDirectory:
    from clinicbill.db import get_connection
    from clinicbill.repositories.sqlalchemy import SQLAlchemyUserDirectory

    return SQLAlchemyUserDirectory(get_connection())


def get_audit_log_repository() -> AuditLogRepository:
    from clinicbill.db import get_connection
    from clinicbill.repositories.sqlalchemy import SQLAlchemyAuditLogRepository

    return SQLAlchemyAuditLogRepository(get_connection())
