"""
app/api/deps.py

Purpose: FastAPI dependency providers

- Injects the database handle and settings into services
- Single place to override collaborators in tests
"""

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.config import Settings, get_settings
from app.db.mongo import get_database
from app.services.payment_service import PaymentService
from app.services.session_service import SessionService
from app.services.stripe_service import StripeGateway
from app.services.user_service import UserService


def get_stripe_gateway(settings: Settings = Depends(get_settings)) -> StripeGateway:
    return StripeGateway(settings)


def get_user_service(db: AsyncIOMotorDatabase = Depends(get_database)) -> UserService:
    return UserService(db)


def get_session_service(
    db: AsyncIOMotorDatabase = Depends(get_database),
    settings: Settings = Depends(get_settings),
    users: UserService = Depends(get_user_service),
) -> SessionService:
    return SessionService(db, settings, users=users)


def get_payment_service(
    db: AsyncIOMotorDatabase = Depends(get_database),
    gateway: StripeGateway = Depends(get_stripe_gateway),
    users: UserService = Depends(get_user_service),
) -> PaymentService:
    return PaymentService(db, gateway, users=users)
