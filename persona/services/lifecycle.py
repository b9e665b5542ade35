"""Account lifecycle service.

Registers accounts, verifies credentials, and drives the email
verification and password recovery flows:

- register: pending account + email token, fires ``user::created``
- verify: login check by any uid + password
- verify_email: pending -> verified, consumes the email token
- update_profile / update_email: email changes reset the account to
  pending and fire ``email::changed`` with a fresh token
- update_password: requires the old password, fires ``password::changed``
- forgot_password / update_password_by_token: recovery via a
  ``password`` token, fires ``forgot::password`` / ``password::recovered``

All checks run before any mutation. Nothing is retried or rolled back:
callers needing atomicity wrap calls in their own transaction scope.
"""

import inspect
import uuid
from collections.abc import Callable, Mapping
from typing import Any

import structlog

from persona.core.config import Settings, settings
from persona.core.encryption import TokenEncrypter
from persona.core.errors import InvalidTokenError, OperationNotAllowedError, ValidationFailed
from persona.core.events import (
    EMAIL_CHANGED,
    FORGOT_PASSWORD,
    PASSWORD_CHANGED,
    PASSWORD_RECOVERED,
    USER_CREATED,
    EmailChanged,
    EventBus,
    ForgotPassword,
    PasswordChanged,
    PasswordRecovered,
    UserCreated,
)
from persona.core.hashing import BcryptHasher
from persona.models.token import EMAIL_TOKEN, PASSWORD_TOKEN, Token
from persona.models.user import User
from persona.repositories.base import TokenRepository, UserRepository
from persona.services.credentials import CredentialVerifier
from persona.services.tokens import TokenStore
from persona.validation.messages import resolve_message
from persona.validation.validator import Validator

logger = structlog.get_logger()

MessageProvider = Callable[[str], Mapping[str, str]]

# Validation actions passed to the message provider
REGISTER_ACTION = "register"
VERIFY_ACTION = "verify"
EMAIL_UPDATE_ACTION = "emailUpdate"
PASSWORD_UPDATE_ACTION = "passwordUpdate"

_UID_FIELD = "uid"
_USER_NOT_FOUND_MESSAGE = "Unable to locate user"


async def _invoke(callback: Callable[..., Any], *args: Any) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class Persona:
    """Orchestrates the account lifecycle over injected collaborators.

    Configuration is copied from ``config`` at construction and never
    changes afterwards.

    Args:
        users: Account storage.
        tokens: Token storage.
        validator: Validation engine.
        hasher: Password hashing facility.
        encrypter: Token obfuscation primitive.
        events: Event publisher.
        config: Field names, states and date format.
        validation_messages: ``action -> {"field.validation": template}``.
            Rule failures are looked up under the action being validated
            (``register``, ``verify``, ``emailUpdate``, ``passwordUpdate``).
            The ``uid.exists`` and ``<field>.mis_match`` messages are looked
            up with ``action=None``, whichever operation raises them.

    Raises:
        ValueError: If a configured field is not a column of the account model.
    """

    def __init__(
        self,
        users: UserRepository,
        tokens: TokenRepository,
        *,
        validator: Validator,
        hasher: BcryptHasher,
        encrypter: TokenEncrypter,
        events: EventBus,
        config: Settings = settings,
        validation_messages: MessageProvider | None = None,
    ) -> None:
        self.uids: tuple[str, ...] = tuple(config.uids)
        self.email_field = config.email_field
        self.password_field = config.password_field
        self.new_account_state = config.new_account_state
        self.verified_account_state = config.verified_account_state
        self.date_format = config.date_format

        self.old_password_field = f"old_{self.password_field}"
        self.password_confirmation_field = f"{self.password_field}_confirmation"

        columns = users.model.column_names()
        unknown = [
            name
            for name in (*self.uids, self.email_field, self.password_field)
            if name not in columns
        ]
        if unknown:
            msg = (
                f"Configured fields must be columns of {config.table}: "
                f"{', '.join(sorted(set(unknown)))}"
            )
            raise ValueError(msg)

        # unique: rules and presence checks name the table from config
        users.table = config.table
        self.users = users
        self.validator = validator
        self.hasher = hasher
        self.events = events
        self.token_store = TokenStore(tokens, encrypter, self.date_format)
        self.credentials = CredentialVerifier(hasher)
        self._validation_messages = validation_messages

    # -- configuration accessors -----------------------------------------

    def get_messages(self, action: str | None = None) -> dict[str, str]:
        """Return custom validation messages for ``action`` (may be empty)."""
        if self._validation_messages is None:
            return {}
        return dict(self._validation_messages(action) or {})

    def get_table(self) -> str:
        """Return the account table name used by ``unique`` rules."""
        return self.users.table

    def get_model(self) -> type[User]:
        """Return the account model class."""
        return self.users.model

    # -- rule builders (pure, no I/O) ------------------------------------

    def registration_rules(self) -> dict[str, str]:
        """Return the rules for registering a new account.

        The password rule comes first, then one rule per uid. Every uid is
        required and unique; the email uid must also be a valid email.
        """
        rules = {self.password_field: "required|confirmed"}
        for uid in self.uids:
            parts = ["required"]
            if uid == self.email_field:
                parts.append("email")
            parts.append(f"unique:{self.get_table()},{uid}")
            rules[uid] = "|".join(parts)
        return rules

    def update_email_rules(self, user_id: uuid.UUID | str | None) -> dict[str, str]:
        """Return the rules for changing the email of account ``user_id``.

        The account's own row is ignored by the uniqueness check.

        Raises:
            ValueError: If ``user_id`` is empty.
        """
        if not user_id:
            msg = "update_email_rules needs the current user id to build the rules"
            raise ValueError(msg)
        return {
            self.email_field: (
                f"required|email|unique:{self.get_table()},{self.email_field},id,{user_id}"
            )
        }

    def update_password_rules(self, enforce_old_password: bool = True) -> dict[str, str]:
        """Return the rules for setting a new password.

        Args:
            enforce_old_password: Also require the old password field. False
                for token-based recovery, where the token is the credential.
        """
        rules = {self.password_field: "required|confirmed"}
        if enforce_old_password:
            rules[self.old_password_field] = "required"
        return rules

    def login_rules(self) -> dict[str, str]:
        """Return the rules for verifying login credentials."""
        return {_UID_FIELD: "required", self.password_field: "required"}

    # -- building blocks -------------------------------------------------

    def massage_registration_data(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Drop the confirmation field and set the new account state.

        Mutates and returns ``payload``.
        """
        payload.pop(self.password_confirmation_field, None)
        payload["account_status"] = self.new_account_state
        return payload

    async def run_validation(
        self, payload: Mapping[str, Any], rules: Mapping[str, str], action: str
    ) -> None:
        """Validate ``payload`` with the custom messages of ``action``.

        Raises:
            ValidationFailed: With every field error, in rule order.
        """
        validation = await self.validator.validate_all(
            payload, rules, self.get_messages(action)
        )
        if validation.fails():
            raise ValidationFailed(validation.messages())

    async def verify_password(
        self,
        candidate: str | None,
        stored_hash: str | None,
        field: str | None = None,
    ) -> None:
        """Raise ValidationFailed (``mis_match``) unless the password matches.

        The message comes from ``get_messages()`` with no action.
        """
        await self.credentials.verify(
            candidate,
            stored_hash,
            field or self.password_field,
            self.get_messages(),
        )

    async def get_user_by_uids(self, value: Any) -> User:
        """Find an account where any configured uid equals ``value``.

        Raises:
            ValidationFailed: With a ``uid.exists`` error when nothing matches.
        """
        account = await self.users.find_by_uids(self.uids, value)
        if account is None:
            data = {"field": _UID_FIELD, "validation": "exists", "value": value}
            message = resolve_message(
                self.get_messages(),
                f"{_UID_FIELD}.exists",
                data,
                _USER_NOT_FOUND_MESSAGE,
            )
            raise ValidationFailed.for_field(_UID_FIELD, "exists", message)
        return account

    async def generate_token(self, account: User, token_type: str) -> str:
        """Return a live token of ``token_type`` for ``account``."""
        return await self.token_store.generate_token(account, token_type)

    async def get_token(self, value: str, token_type: str) -> Token | None:
        """Return the live token with its owner, or None."""
        return await self.token_store.get_token(value, token_type)

    async def remove_token(self, value: str, token_type: str) -> None:
        """Delete the tokens matching value and type."""
        await self.token_store.remove_token(value, token_type)

    async def _set_password(self, account: User, plain: str) -> None:
        account.set_field(self.password_field, await self.hasher.make(plain))

    # -- lifecycle operations --------------------------------------------

    async def register(
        self,
        payload: Mapping[str, Any],
        prepare: Callable[[dict[str, Any]], Any] | None = None,
    ) -> User:
        """Create a pending account and its email verification token.

        Fires ``user::created``.

        Args:
            payload: Uids, password and password confirmation, plus any
                extra profile fields.
            prepare: Optional (async) callback receiving the data about to
                be persisted; may add fields to it.

        Returns:
            The created account.

        Raises:
            ValidationFailed: If the payload fails the registration rules.
        """
        await self.run_validation(payload, self.registration_rules(), REGISTER_ACTION)

        data = self.massage_registration_data(dict(payload))
        if prepare is not None:
            await _invoke(prepare, data)
        data[self.password_field] = await self.hasher.make(data[self.password_field])

        account = await self.users.create(data)
        token = await self.token_store.generate_token(account, EMAIL_TOKEN)

        logger.info("account_registered", user_id=str(account.id))
        await self.events.publish(USER_CREATED, UserCreated(account=account, token=token))
        return account

    async def verify(
        self,
        payload: Mapping[str, Any],
        prepare: Callable[[User, str], Any] | None = None,
    ) -> User:
        """Verify login credentials.

        Args:
            payload: ``uid`` (any configured uid value) and the password.
            prepare: Optional (async) callback run with the account and the
                entered password before the password check; may raise to
                abort the login.

        Returns:
            The matching account. No event is fired.

        Raises:
            ValidationFailed: On missing input, unknown uid, or wrong password.
        """
        await self.run_validation(payload, self.login_rules(), VERIFY_ACTION)
        account = await self.get_user_by_uids(payload[_UID_FIELD])

        entered_password = payload[self.password_field]
        if prepare is not None:
            await _invoke(prepare, account, entered_password)

        await self.verify_password(
            entered_password,
            account.get_field(self.password_field),
        )
        return account

    async def verify_email(self, token: str) -> User:
        """Mark the account owning an email token as verified.

        Only pending accounts change state, and only then is the token
        consumed. Accounts in any other state are returned untouched.

        Raises:
            InvalidTokenError: If no live email token matches.
        """
        row = await self.token_store.get_token(token, EMAIL_TOKEN)
        if row is None:
            raise InvalidTokenError()

        account = row.user
        if account.account_status == self.new_account_state:
            account.account_status = self.verified_account_state
            await self.token_store.remove_token(token, EMAIL_TOKEN)
            await self.users.save(account)
            logger.info("email_verified", user_id=str(account.id))

        return account

    async def update_email(self, account: User, new_email: str) -> User:
        """Change the account email and restart email verification.

        Fires ``email::changed`` with the old email and a fresh token.

        Raises:
            ValidationFailed: If the email is missing, invalid, or taken by
                another account.
        """
        await self.run_validation(
            {self.email_field: new_email},
            self.update_email_rules(account.id),
            EMAIL_UPDATE_ACTION,
        )

        old_email = account.get_field(self.email_field)
        account.account_status = self.new_account_state
        account.set_field(self.email_field, new_email)
        await self.users.save(account)

        token = await self.token_store.generate_token(account, EMAIL_TOKEN)

        logger.info("email_changed", user_id=str(account.id))
        await self.events.publish(
            EMAIL_CHANGED,
            EmailChanged(account=account, old_email=old_email, token=token),
        )
        return account

    async def update_profile(self, account: User, payload: Mapping[str, Any]) -> User:
        """Merge profile fields onto the account.

        A changed email goes through :meth:`update_email`; anything else is
        a plain save with no event.

        Raises:
            OperationNotAllowedError: If the payload contains the password.
            ValidationFailed: If a changed email fails the email rules.
        """
        if self.password_field in payload:
            raise OperationNotAllowedError()

        has_email = self.email_field in payload
        new_email = payload.get(self.email_field)
        old_email = account.get_field(self.email_field)

        account.merge(dict(payload))

        if has_email and new_email != old_email:
            # update_email needs the old address still on the account
            account.set_field(self.email_field, old_email)
            return await self.update_email(account, new_email)

        await self.users.save(account)
        return account

    async def update_password(self, account: User, payload: Mapping[str, Any]) -> User:
        """Change the password after checking the old one.

        Fires ``password::changed``.

        Raises:
            ValidationFailed: On missing/unconfirmed input, or ``mis_match``
                on the old password field.
        """
        await self.run_validation(
            payload, self.update_password_rules(), PASSWORD_UPDATE_ACTION
        )

        await self.verify_password(
            payload[self.old_password_field],
            account.get_field(self.password_field),
            self.old_password_field,
        )

        await self._set_password(account, payload[self.password_field])
        await self.users.save(account)

        logger.info("password_changed", user_id=str(account.id))
        await self.events.publish(PASSWORD_CHANGED, PasswordChanged(account=account))
        return account

    async def forgot_password(self, uid: Any) -> None:
        """Issue a password recovery token for the account matching ``uid``.

        Fires ``forgot::password`` with the token.

        Raises:
            ValidationFailed: With ``uid.exists`` if no account matches.
        """
        account = await self.get_user_by_uids(uid)
        token = await self.token_store.generate_token(account, PASSWORD_TOKEN)

        logger.info("password_recovery_requested", user_id=str(account.id))
        await self.events.publish(
            FORGOT_PASSWORD, ForgotPassword(account=account, token=token)
        )

    async def update_password_by_token(
        self, token: str, payload: Mapping[str, Any]
    ) -> User:
        """Reset the password with a recovery token and consume the token.

        Fires ``password::recovered``.

        Raises:
            ValidationFailed: On missing or unconfirmed password.
            InvalidTokenError: If no live password token matches.
        """
        await self.run_validation(
            payload, self.update_password_rules(False), PASSWORD_UPDATE_ACTION
        )

        row = await self.token_store.get_token(token, PASSWORD_TOKEN)
        if row is None:
            raise InvalidTokenError()

        account = row.user
        await self._set_password(account, payload[self.password_field])
        await self.users.save(account)
        await self.token_store.remove_token(token, PASSWORD_TOKEN)

        logger.info("password_recovered", user_id=str(account.id))
        await self.events.publish(
            PASSWORD_RECOVERED, PasswordRecovered(account=account)
        )
        return account
