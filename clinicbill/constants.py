from zoneinfo import ZoneInfo

from clinicbill.models.payment import PaymentType
from clinicbill.settings import settings

CLINIC_TZ = ZoneInfo(settings.timezone)

PAYMENT_TYPE_LABELS = {
    PaymentType.CASH: "Cash",
    PaymentType.CARD: "Card",
    PaymentType.BANK_TRANSFER: "Bank transfer",
    PaymentType.INSURANCE: "Insurance",
    PaymentType.REFUND: "Refund",
}
