from decimal import Decimal

import factory
from django.utils import timezone
from factory.django import DjangoModelFactory

from dripaccess.payments.constants import OrderStatus
from dripaccess.payments.constants import PlanType
from dripaccess.payments.models import Order
from dripaccess.payments.models import UnappliedPayment
from dripaccess.users.tests.factories import UserFactory


class OrderFactory(DjangoModelFactory):
    class Meta:
        model = Order

    gateway_order_id = factory.Sequence(lambda n: f"order_test{n:06d}")
    user = factory.SubFactory(UserFactory)
    amount = Decimal("199.00")
    currency = "INR"
    plan_type = PlanType.FOUR_DAY
    receipt = factory.LazyAttribute(lambda o: f"{o.plan_type}_sub_{o.user.pk}")
    status = OrderStatus.PENDING


class CapturedOrderFactory(OrderFactory):
    status = OrderStatus.CAPTURED
    gateway_payment_id = factory.Sequence(lambda n: f"pay_test{n:06d}")
    captured_at = factory.LazyFunction(timezone.now)


class UnappliedPaymentFactory(DjangoModelFactory):
    class Meta:
        model = UnappliedPayment

    source = "payment.captured"
    gateway_order_id = factory.Sequence(lambda n: f"order_unapplied{n:06d}")
    gateway_payment_id = factory.Sequence(lambda n: f"pay_test{n:06d}")
    error_code = "data_integrity"
    error_detail = "User could not be loaded."
