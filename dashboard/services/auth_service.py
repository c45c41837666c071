from typing import Optional, Tuple

from dashboard.core.config import settings
from dashboard.core.exceptions import (
    AuthenticationError,
    DashboardError,
    FormValidationError,
    InvitationError,
    StorageError,
)
from dashboard.core.logger import logger
from dashboard.core.security import SessionContext, SessionRegistry, open_session
from dashboard.models.auth_models import (
    AuthSession,
    ForgotPasswordRequest,
    LoginRequest,
    PasswordChangeRequest,
    ResetPasswordRequest,
    SignupRequest,
    SignupResult,
)
from dashboard.services.db_service import USERS, run_query
from dashboard.services.supabase_client import close_client, create_admin_client, create_anon_client


def validate_new_password(password: str, confirmation: Optional[str], form: dict, field: str = "password"):
    """Checks done before any call to Supabase."""
    if confirmation is not None and password != confirmation:
        raise FormValidationError("Passwords do not match", field="confirm_password", form=form)
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise FormValidationError(
            f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long", field=field, form=form
        )


def _auth_session(session, context: SessionContext) -> AuthSession:
    return AuthSession(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_at=session.expires_at,
        email=context.email,
        profile=context.profile,
    )


class AuthService:
    """
    Supabase Auth flows. Visitor-side calls go through a one-off anon client
    that is closed before returning; signed-in calls reuse the session's client.
    """

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    async def login(self, form: LoginRequest) -> Tuple[AuthSession, SessionContext]:
        email = form.email.strip()
        if not email or not form.password:
            raise FormValidationError("Email and password are required", form=form.model_dump())

        client = await create_anon_client()
        try:
            response = await client.auth.sign_in_with_password({"email": email, "password": form.password})
        except Exception as e:
            logger.warning(f"⚠️ Login failed for {email}: {e}")
            raise AuthenticationError("Invalid email or password")
        finally:
            await close_client(client)

        session = response.session
        if session is None:
            raise AuthenticationError("Email address not confirmed yet")

        context = await open_session(session.access_token, self.registry.ttl_seconds)
        await self.registry.put(context)
        logger.info(f"🔐 {email} signed in")
        return _auth_session(session, context), context

    async def refresh(self, refresh_token: Optional[str], previous_token: Optional[str] = None) -> Tuple[AuthSession, SessionContext]:
        """Trades the refresh token for a new session; the old access token's context is dropped."""
        if not refresh_token:
            raise AuthenticationError("Session expired. Please sign in again.")

        client = await create_anon_client()
        try:
            response = await client.auth.refresh_session(refresh_token)
        except Exception as e:
            logger.warning(f"⚠️ Session refresh failed: {e}")
            raise AuthenticationError("Session expired. Please sign in again.")
        finally:
            await close_client(client)

        session = response.session if response else None
        if session is None:
            raise AuthenticationError("Session expired. Please sign in again.")

        if previous_token and previous_token != session.access_token:
            await self.registry.drop(previous_token)
        context = await open_session(session.access_token, self.registry.ttl_seconds)
        await self.registry.put(context)
        logger.info(f"🔄 Session refreshed for {context.email}")
        return _auth_session(session, context), context

    async def logout(self, context: SessionContext) -> None:
        try:
            await context.client.auth.admin.sign_out(context.access_token)
        except Exception as e:
            # The local session is dropped regardless
            logger.warning(f"⚠️ Supabase sign-out failed: {e}")
        await self.registry.drop(context.access_token)
        logger.info(f"👋 {context.email} signed out")

    async def signup(self, form: SignupRequest) -> SignupResult:
        """
        Activates an invited business account: the `users` row must already
        exist for the email and must not be linked to an auth user yet.
        """
        email = form.email.strip()
        submitted = form.model_dump()
        if not email or not form.password:
            raise FormValidationError("Email and password are required", form=submitted)
        validate_new_password(form.password, form.confirm_password, submitted)

        admin = await create_admin_client()
        try:
            return await self._activate(admin, email, form.password)
        finally:
            await close_client(admin)

    async def _activate(self, admin, email: str, password: str) -> SignupResult:
        # 1. Invitation lookup
        response = await run_query(
            admin.table(USERS).select("id, dashboard_user_id, business_name, email").eq("email", email).limit(1),
            "signup_lookup",
        )
        if not response.data:
            raise InvitationError("No account is associated with this email. Contact your administrator.")
        invitation = response.data[0]

        if invitation.get("dashboard_user_id"):
            raise DashboardError("This account is already active. Please sign in.", status_code=400)

        # 2. Auth user, unconfirmed until the invitation email is followed
        try:
            created = await admin.auth.admin.create_user({
                "email": email,
                "password": password,
                "email_confirm": False,
                "user_metadata": {
                    "business_name": invitation.get("business_name"),
                    "user_id": invitation["id"],
                },
            })
        except Exception as e:
            logger.error(f"❌ Auth user creation failed for {email}: {e}")
            raise DashboardError(f"Account creation failed: {e}", status_code=500)
        auth_user_id = created.user.id

        # 3. Link the business row; roll the auth user back if that fails
        try:
            await run_query(
                admin.table(USERS).update({"dashboard_user_id": auth_user_id}).eq("id", invitation["id"]),
                "signup_link",
            )
        except StorageError:
            await admin.auth.admin.delete_user(auth_user_id)
            raise DashboardError("Account activation failed", status_code=500)

        # 4. Confirmation email; the account exists either way
        try:
            await admin.auth.admin.invite_user_by_email(
                email, {"redirect_to": f"{settings.SITE_URL}/auth/callback"}
            )
        except Exception as e:
            logger.error(f"❌ Invitation email failed for {email}: {e}")

        logger.info(f"🆕 Dashboard account activated for {email}")
        return SignupResult(
            message="Account created! Check your inbox to confirm your email address.",
            profile_id=str(invitation["id"]),
            email=invitation.get("email") or email,
            business_name=invitation.get("business_name"),
        )

    async def forgot_password(self, form: ForgotPasswordRequest) -> None:
        email = form.email.strip()
        if not email:
            raise FormValidationError("Email is required", field="email", form=form.model_dump())

        client = await create_anon_client()
        try:
            await client.auth.reset_password_for_email(
                email, {"redirect_to": f"{settings.SITE_URL}/reset-password"}
            )
        except Exception as e:
            logger.error(f"❌ Password reset email failed for {email}: {e}")
            raise StorageError(str(e))
        finally:
            await close_client(client)
        logger.info(f"📧 Password reset requested for {email}")

    async def reset_password(self, context: SessionContext, refresh_token: Optional[str], form: ResetPasswordRequest) -> None:
        """Sets a new password for the recovery session opened by the reset link."""
        validate_new_password(form.password, form.confirm_password, form.model_dump())

        client = await create_anon_client()
        try:
            await client.auth.set_session(context.access_token, refresh_token or "")
            await client.auth.update_user({"password": form.password})
        except Exception as e:
            logger.error(f"❌ Password reset failed for {context.email}: {e}")
            raise StorageError(str(e))
        finally:
            await close_client(client)
        logger.info(f"🔑 Password reset for {context.email}")

    async def change_password(self, context: SessionContext, form: PasswordChangeRequest) -> None:
        submitted = form.model_dump()
        if not form.current_password:
            raise FormValidationError("Please enter your current password", field="current_password", form=submitted)
        if form.new_password != form.confirm_password:
            raise FormValidationError("The new passwords do not match", field="confirm_password", form=submitted)
        if len(form.new_password) < settings.MIN_PASSWORD_LENGTH:
            raise FormValidationError(
                f"The new password must be at least {settings.MIN_PASSWORD_LENGTH} characters long",
                field="new_password",
                form=submitted,
            )
        if form.current_password == form.new_password:
            raise FormValidationError(
                "The new password must differ from the current one", field="new_password", form=submitted
            )
        if not context.email:
            raise AuthenticationError("Unable to identify the current user")

        client = await create_anon_client()
        try:
            await self._replace_password(client, context.email, form, submitted)
        finally:
            await close_client(client)
        logger.info(f"🔑 Password changed for {context.email}")

    async def _replace_password(self, client, email: str, form: PasswordChangeRequest, submitted: dict) -> None:
        # Re-authenticating proves the current password
        try:
            await client.auth.sign_in_with_password({"email": email, "password": form.current_password})
        except Exception as e:
            logger.warning(f"⚠️ Current password check failed for {email}: {e}")
            raise FormValidationError("Current password is incorrect", field="current_password", form=submitted)

        try:
            await client.auth.update_user({"password": form.new_password})
        except Exception as e:
            logger.error(f"❌ Password change failed for {email}: {e}")
            raise StorageError(str(e))
