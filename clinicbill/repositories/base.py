from abc import ABC, abstractmethod
from uuid import UUID

from clinicbill.models.audit_log import AuditLog
from clinicbill.models.billing import Discount, SessionBilling
from clinicbill.models.invoice import Invoice
from clinicbill.models.payment import Payment
from clinicbill.models.session import ClinicalSession
from clinicbill.models.user import UserRef


class SessionBillingRepository(ABC):
    @abstractmethod
    def create(self, billing: SessionBilling) -> SessionBilling: ...

    @abstractmethod
    def get_by_id(self, billing_id: UUID) -> SessionBilling | None: ...

    @abstractmethod
    def get_by_session_id(self, session_id: UUID) -> SessionBilling | None: ...

    @abstractmethod
    def exists_by_id(self, billing_id: UUID) -> bool: ...

    @abstractmethod
    def exists_for_session(self, session_id: UUID) -> bool: ...

    @abstractmethod
    def list_by_ids(self, billing_ids: list[UUID]) -> list[SessionBilling]: ...

    @abstractmethod
    def list_all(self) -> list[SessionBilling]: ...

    @abstractmethod
    def add_discount(self, billing_id: UUID, discount: Discount, expected_version: int) -> SessionBilling:
        """Append a discount if the billing is still at ``expected_version``."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard any transaction left open on the store by a failed operation."""


class InvoiceRepository(ABC):
    @abstractmethod
    def create(self, invoice: Invoice) -> Invoice: ...

    @abstractmethod
    def get_by_id(self, invoice_id: UUID) -> Invoice | None: ...

    @abstractmethod
    def get_by_number(self, invoice_number: str) -> Invoice | None: ...

    @abstractmethod
    def exists_by_id(self, invoice_id: UUID) -> bool: ...

    @abstractmethod
    def exists_invoice_number(self, invoice_number: str) -> bool: ...

    @abstractmethod
    def list_by_ids(self, invoice_ids: list[UUID]) -> list[Invoice]: ...

    @abstractmethod
    def list_by_session_billing(self, billing_id: UUID) -> list[Invoice]: ...

    @abstractmethod
    def list_all(self) -> list[Invoice]: ...

    @abstractmethod
    def convert_to_final(self, invoice_id: UUID, new_invoice_number: str, expected_version: int) -> Invoice:
        """Flip a proforma to final if it is still at ``expected_version``."""

    @abstractmethod
    def rollback(self) -> None: ...


class PaymentRepository(ABC):
    @abstractmethod
    def create(self, payment: Payment, invoice_versions: dict[UUID, int]) -> Payment:
        """Insert a payment and link it to its invoices.

        Fails if any invoice moved past the version in ``invoice_versions``.
        """

    @abstractmethod
    def get_by_id(self, payment_id: UUID) -> Payment | None: ...

    @abstractmethod
    def list_by_ids(self, payment_ids: list[UUID]) -> list[Payment]: ...

    @abstractmethod
    def list_all(self) -> list[Payment]: ...

    @abstractmethod
    def rollback(self) -> None: ...


class SessionProvider(ABC):
    @abstractmethod
    def get_session(self, session_id: UUID) -> ClinicalSession | None: ...


class UserDirectory(ABC):
    @abstractmethod
    def get_user(self, user_id: UUID) -> UserRef | None: ...

    @abstractmethod
    def list_users(self) -> list[UserRef]: ...


class AuditLogRepository(ABC):
    @abstractmethod
    def create(self, audit_log: AuditLog) -> AuditLog: ...

    @abstractmethod
    def list_by_entity(self, entity_type: str, entity_id: str) -> list[AuditLog]: ...

    @abstractmethod
    def list_recent(self, limit: int = 50) -> list[AuditLog]: ...
