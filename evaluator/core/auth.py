"""
Authentication state

AuthNotifier delivers "signed in" / "signed out" events to subscribers.
AuthSession reacts to them:
  - signed in  → resolve the user's admin record (cached as admin_<uid>)
  - signed out → drop every cache entry so the next user starts clean
"""
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from pydantic import BaseModel

from evaluator.context import AppContext
from evaluator.core.loader import CollectionLoadError, CollectionLoader
from evaluator.core.store import StoreError
from evaluator.models import Admin, Collection, Permissions

logger = logging.getLogger(__name__)


SUPER_ADMIN = "super-admin"


class AuthEventKind(str, Enum):
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"


class AuthEvent(BaseModel):
    kind: AuthEventKind
    uid: Optional[str] = None
    email: Optional[str] = None


Listener = Callable[[AuthEvent], Awaitable[None]]


class AuthNotifier:
    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    async def publish(self, event: AuthEvent) -> None:
        for listener in self._listeners:
            await listener(event)


def read_only_profile(email: Optional[str]) -> Admin:
    return Admin(email=email or "", type="user", permissions=Permissions())


class AuthSession:
    """Tracks the signed-in user on the application context"""

    def __init__(self, context: AppContext, loader: CollectionLoader, notifier: AuthNotifier):
        self.context = context
        self.loader = loader
        notifier.subscribe(self.handle)

    @property
    def user(self) -> Optional[Admin]:
        return self.context.current_user

    def can(self, permission: str) -> bool:
        """True if the signed-in user holds a permission ("read", "write", "delete")"""
        user = self.context.current_user
        if user is None:
            return False
        if user.type == SUPER_ADMIN:
            return True
        return bool(getattr(user.permissions, permission, False))

    async def handle(self, event: AuthEvent) -> None:
        if event.kind is AuthEventKind.SIGNED_IN:
            await self.sign_in(event.uid, event.email)
        else:
            self.sign_out()

    async def resolve_admin(self, uid: str, email: Optional[str]) -> Admin:
        """
        Find the admin record of a user

        Lookup order: cache (admin_<uid>), admins/<uid>, admins where email == email.
        Users without a record, or whose lookup fails, get a read-only profile,
        which is not cached.
        """
        cache_key = f"admin_{uid}"
        cached = self.context.cache.get(cache_key)
        if cached is not None:
            try:
                return Admin.model_validate(cached)
            except ValueError:
                self.context.cache.clear(cache_key)

        store = self.context.store
        try:
            doc = await store.get(Collection.ADMINS.value, uid)
            if doc is None and email:
                matches = await store.query(Collection.ADMINS.value, email=email)
                doc = matches[0] if matches else None
        except StoreError as e:
            logger.error(f"❌ Admin lookup failed for {uid}: {e}")
            return read_only_profile(email)

        if doc is None:
            return read_only_profile(email)

        try:
            admin = Admin.model_validate(doc)
        except ValueError as e:
            logger.warning(f"⚠️ Admin record for {uid} is invalid: {e}")
            return read_only_profile(email)

        self.context.cache.set(cache_key, admin.model_dump(mode="json"))
        return admin

    async def sign_in(self, uid: Optional[str], email: Optional[str]) -> Admin:
        if not uid:
            raise ValueError("uid is required to sign in")

        admin = await self.resolve_admin(uid, email)
        self.context.current_uid = uid
        self.context.current_user = admin
        logger.info(f"🔑 Signed in {email or uid} as {admin.type}")

        if admin.type == SUPER_ADMIN:
            try:
                await self.loader.load(Collection.ADMINS)
            except CollectionLoadError as e:
                logger.error(f"❌ Could not load admins: {e}")
        return admin

    def sign_out(self) -> None:
        uid = self.context.current_uid
        self.context.current_uid = None
        self.context.current_user = None
        self.context.collections.admins = []
        self.context.cache.clear_all()
        logger.info(f"🔒 Signed out {uid or 'anonymous user'}")
