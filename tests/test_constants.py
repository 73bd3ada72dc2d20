from clinicbill.constants import CLINIC_TZ, PAYMENT_TYPE_LABELS
from clinicbill.models.payment import PaymentType


class TestPaymentTypeLabels:
    def test_every_type_has_a_label(self):
        assert set(PAYMENT_TYPE_LABELS) == set(PaymentType)

    def test_bank_transfer(self):
        assert PAYMENT_TYPE_LABELS[PaymentType.BANK_TRANSFER] == "Bank transfer"


class TestClinicTimezone:
    def test_default_zone(self):
        assert CLINIC_TZ.key == "Europe/Bucharest"
