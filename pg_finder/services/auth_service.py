"""
Auth workflow

Email-OTP registration, login, password reset and role elevation.

Registration never persists an unverified user: the fields collected at
send-otp time travel back to the client inside a signed registration
token (tempData) and are only written once a matching code is presented.
"""

import logging
from datetime import timedelta
from typing import Callable, Optional, Tuple

from fastapi import Depends, Request
from jose import JWTError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pg_finder.core import email_service
from pg_finder.core.auth import (
    REGISTRATION_TOKEN_TYPE,
    create_access_token,
    create_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from pg_finder.core.config import Settings
from pg_finder.core.database_client import get_db
from pg_finder.core.email_service import NotificationSender
from pg_finder.core.exceptions import (
    AlreadyOwner,
    Conflict,
    DeliveryFailed,
    InputValidationError,
    InvalidCredentials,
    InvalidOrExpiredCode,
    NotFound,
)
from pg_finder.core.otp import generate_otp
from pg_finder.models.base import utcnow
from pg_finder.models.otp import OneTimeCode, OtpPurpose
from pg_finder.models.user import User, UserRole

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:

    def __init__(
        self,
        db: Session,
        notifier: NotificationSender,
        settings: Settings,
        otp_generator: Optional[Callable[[int], str]] = None,
    ):
        self.db = db
        self.notifier = notifier
        self.settings = settings
        self.otp_generator = otp_generator or generate_otp

    # ======================================================
    # Internal helpers
    # ======================================================

    def _find_user(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def _hash(self, password: str) -> str:
        try:
            return get_password_hash(password)
        except ValueError as e:
            raise InputValidationError(str(e))

    def _issue_code(self, email: str, purpose: OtpPurpose) -> OneTimeCode:
        now = utcnow()
        record = OneTimeCode(
            email=email,
            code=self.otp_generator(self.settings.OTP_LENGTH),
            purpose=purpose.value,
            created_at=now,
            expires_at=now + timedelta(minutes=self.settings.OTP_EXPIRE_MINUTES),
            is_used=False,
        )
        self.db.add(record)
        self.db.commit()
        logger.info(f"Issued {purpose.value} OTP for {email}")
        return record

    def _find_valid_code(self, email: str, code: str, purpose: OtpPurpose) -> Optional[OneTimeCode]:
        return (
            self.db.query(OneTimeCode)
            .filter(
                OneTimeCode.email == normalize_email(email),
                OneTimeCode.code == code,
                OneTimeCode.purpose == purpose.value,
                OneTimeCode.is_used.is_(False),
                OneTimeCode.expires_at > utcnow(),
            )
            .order_by(OneTimeCode.created_at.desc())
            .first()
        )

    def _find_verified_reset_code(self, email: str, code: str) -> Optional[OneTimeCode]:
        """
        A reset code already consumed by verify_reset_otp and still inside the grace window.

        The window runs from verified_at, not expires_at, so a code verified just
        before expiry stays redeemable for RESET_GRACE_MINUTES more. Verification
        itself requires an unexpired code, which caps the total lifetime at
        OTP_EXPIRE_MINUTES + RESET_GRACE_MINUTES.
        """
        window_start = utcnow() - timedelta(minutes=self.settings.RESET_GRACE_MINUTES)
        return (
            self.db.query(OneTimeCode)
            .filter(
                OneTimeCode.email == normalize_email(email),
                OneTimeCode.code == code,
                OneTimeCode.purpose == OtpPurpose.PASSWORD_RESET.value,
                OneTimeCode.is_used.is_(True),
                OneTimeCode.verified_at.isnot(None),
                OneTimeCode.verified_at > window_start,
                OneTimeCode.redeemed_at.is_(None),
            )
            .order_by(OneTimeCode.created_at.desc())
            .first()
        )

    def _send_code(self, email: str, template: str, code: str, name: str):
        try:
            self.notifier.send(email, template, {
                "name": name,
                "code": code,
                "expiry_minutes": self.settings.OTP_EXPIRE_MINUTES,
            })
        except DeliveryFailed:
            # The stored code stays valid; a resend purges and reissues it
            logger.error(f"OTP delivery failed for {email} ({template})")
            raise DeliveryFailed("Failed to send OTP email")

    def _notify_best_effort(self, email: str, template: str, context: dict):
        try:
            self.notifier.send(email, template, context)
        except DeliveryFailed:
            logger.warning(f"Could not send '{template}' email to {email}, continuing")

    def _registration_token(self, email: str, name: str, phone: Optional[str], role: str, password_hash: str) -> str:
        return create_token(
            {"sub": email, "name": name, "phone": phone, "role": role, "pwd": password_hash},
            self.settings,
            REGISTRATION_TOKEN_TYPE,
            timedelta(hours=self.settings.REGISTRATION_DATA_EXPIRE_HOURS),
        )

    def _read_registration_token(self, email: str, temp_data: str) -> dict:
        try:
            payload = decode_token(temp_data, self.settings, REGISTRATION_TOKEN_TYPE)
        except JWTError:
            raise InputValidationError("Registration data is invalid or has expired, please register again")
        if payload.get("sub") != email:
            raise InputValidationError("Registration data does not belong to this email")
        return payload

    def issue_session_token(self, user: User) -> str:
        return create_access_token({"sub": user.id}, self.settings)

    # ======================================================
    # Registration
    # ======================================================

    def request_registration_otp(
        self,
        *,
        name: str,
        email: str,
        password: str,
        phone: Optional[str] = None,
        role: Optional[str] = None,
    ) -> dict:
        """
        Send a registration code to a new address.

        Returns the normalised email and the opaque registration bundle the
        client must echo back on verification or resend.
        """
        email = normalize_email(email)
        if self._find_user(email):
            raise Conflict()

        role = role or UserRole.SEEKER.value
        temp_data = self._registration_token(email, name, phone, role, self._hash(password))

        record = self._issue_code(email, OtpPurpose.REGISTRATION)
        self._send_code(email, email_service.REGISTRATION_OTP, record.code, name)

        return {"email": email, "tempData": temp_data}

    def resend_registration_otp(self, *, email: str, temp_data: str) -> dict:
        email = normalize_email(email)
        bundle = self._read_registration_token(email, temp_data)
        if self._find_user(email):
            raise Conflict()

        deleted = (
            self.db.query(OneTimeCode)
            .filter(
                OneTimeCode.email == email,
                OneTimeCode.purpose == OtpPurpose.REGISTRATION.value,
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Purged {deleted} registration OTP(s) for {email} before resend")

        record = self._issue_code(email, OtpPurpose.REGISTRATION)
        self._send_code(email, email_service.REGISTRATION_OTP, record.code, bundle.get("name"))

        return {"email": email}

    def verify_registration_otp(self, *, email: str, code: str, temp_data: str) -> Tuple[User, str]:
        email = normalize_email(email)
        bundle = self._read_registration_token(email, temp_data)

        record = self._find_valid_code(email, code, OtpPurpose.REGISTRATION)
        if record is None:
            raise InvalidOrExpiredCode()

        # Another verification may have won the race since send-otp
        if self._find_user(email):
            raise Conflict()

        user = User(
            email=email,
            name=bundle["name"],
            phone=bundle.get("phone"),
            hashed_password=bundle["pwd"],
            role=bundle.get("role") or UserRole.SEEKER.value,
            is_verified=True,
        )
        self.db.add(user)
        record.mark_used()
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Registration race lost for {email}")
            raise Conflict()

        self._notify_best_effort(email, email_service.WELCOME, {
            "name": user.name,
            "frontend_url": self.settings.FRONTEND_URL,
        })

        return user, self.issue_session_token(user)

    # ======================================================
    # Login
    # ======================================================

    def login(self, *, email: str, password: str) -> Tuple[User, str]:
        user = self._find_user(email)

        # Same error for unknown email and wrong password
        if not user or not verify_password(password, user.hashed_password):
            raise InvalidCredentials()

        return user, self.issue_session_token(user)

    # ======================================================
    # Password reset
    # ======================================================

    def request_password_reset(self, *, email: str) -> None:
        email = normalize_email(email)
        user = self._find_user(email)
        if not user:
            raise NotFound("User with this email does not exist")

        record = self._issue_code(email, OtpPurpose.PASSWORD_RESET)
        self._send_code(email, email_service.PASSWORD_RESET_OTP, record.code, user.name)

    def verify_reset_otp(self, *, email: str, code: str) -> None:
        """Consumes the code; reset_password still accepts it during the grace window."""
        record = self._find_valid_code(email, code, OtpPurpose.PASSWORD_RESET)
        if record is None:
            raise InvalidOrExpiredCode()

        record.mark_used()
        record.verified_at = utcnow()
        self.db.commit()

    def reset_password(self, *, email: str, code: str, new_password: str) -> None:
        email = normalize_email(email)
        record = self._find_valid_code(email, code, OtpPurpose.PASSWORD_RESET)
        if record is None:
            record = self._find_verified_reset_code(email, code)
        if record is None:
            raise InvalidOrExpiredCode()

        user = self._find_user(email)
        if not user:
            raise NotFound("User not found")

        user.hashed_password = self._hash(new_password)
        record.mark_used()
        record.redeemed_at = utcnow()
        self.db.commit()
        logger.info(f"Password reset completed for {email}")

        self._notify_best_effort(email, email_service.PASSWORD_RESET_CONFIRMATION, {"name": user.name})

    # ======================================================
    # Roles
    # ======================================================

    def become_owner(self, user: User) -> User:
        if user.is_owner:
            raise AlreadyOwner()

        user.role = UserRole.OWNER.value
        self.db.commit()
        logger.info(f"User {user.id} became an owner")
        return user


def get_auth_service(request: Request, db: Session = Depends(get_db)) -> AuthService:
    state = request.app.state
    return AuthService(db, state.notifier, state.settings, otp_generator=state.otp_generator)
