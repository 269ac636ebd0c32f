# aquador_app/models/__init__.py
# -*- coding: utf-8 -*-
from .user import User, Profile
from .course import SwimClass, ClassSession
from .enrollment import Enrollment
from .booking import Booking
from .payment import Payment
from .events import ReservationEvent, PaymentEvent


__all__ = [
    "User",
    "Profile",
    "SwimClass",
    "ClassSession",
    "Enrollment",
    "Booking",
    "Payment",
    "ReservationEvent",
    "PaymentEvent",
]
