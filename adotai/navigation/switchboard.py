"""
Navigation switchboard.

A single in-memory state machine: one current page plus the selection state
pages need (selected animal, request, chat target, conversation, viewed
profile, chosen account type). Pages change only through the handler
methods below. ``render()`` checks the page's guard and returns a
``PageView`` or ``None``; a failed guard renders nothing, it never raises
and never redirects.
"""

import logging
from fastapi import HTTPException
from pydantic import BaseModel
from supabase import Client
from typing import Any, Callable, Dict, Literal, Optional, Union

from adotai.core.errors import error_message, is_schema_missing
from adotai.modules.auth.schemas import SignupRequest
from adotai.modules.auth.service import AuthService
from adotai.modules.messaging.service import MessagingService
from adotai.modules.users.schemas import UserResponse
from adotai.navigation.events import EventBus, ADVERTISER_DATA_CHANGED
from adotai.navigation.pages import Page, PageView, FOOTERLESS_PAGES

logger = logging.getLogger(__name__)

AccountType = Literal["adopter", "advertiser"]

INIT_ERROR_MESSAGE = "Failed to initialize the application. Check that the database is configured."
LOGIN_REQUIRED_MESSAGE = "Please sign in to continue"
ADOPTERS_ONLY_CHAT_MESSAGE = "Only adopters can start conversations"
ADVERTISER_CANNOT_ADOPT_MESSAGE = "Advertisers cannot request adoptions. Create an adopter account."


class ChatParams(BaseModel):
    adopter_id: str
    animal_id: str


class NavigationState(BaseModel):
    page: Page = Page.HOME
    user: Optional[UserResponse] = None
    access_token: Optional[str] = None
    selected_account_type: Optional[AccountType] = None
    show_account_type_dialog: bool = False
    selected_animal_id: Optional[str] = None
    selected_request_id: Optional[str] = None
    chat_params: Optional[ChatParams] = None
    selected_conversation_id: Optional[str] = None
    viewing_profile_id: Optional[str] = None
    loading: bool = True
    init_error: Optional[str] = None
    db_setup_needed: bool = False


class ActionResult(BaseModel):
    success: bool
    error: Optional[str] = None


class Switchboard:
    def __init__(self, auth_service: AuthService, messaging_service: MessagingService, events: Optional[EventBus] = None):
        self.auth = auth_service
        self.messaging = messaging_service
        self.events = events or EventBus()
        self.state = NavigationState()

    @classmethod
    def from_clients(cls, supabase: Client, admin_supabase: Client, events: Optional[EventBus] = None) -> "Switchboard":
        return cls(AuthService(supabase, admin_supabase), MessagingService(supabase, admin_supabase), events)

    @property
    def page(self) -> Page:
        return self.state.page

    @property
    def user(self) -> Optional[UserResponse]:
        return self.state.user

    def _identity(self) -> Dict[str, Any]:
        return {"id": self.state.user.id, "email": self.state.user.email}

    # Bootstrap

    def initialize(self, access_token: Optional[str] = None):
        """
        Probe the database, then resolve an existing session to a profile.
        A schema-missing probe failure sets ``db_setup_needed``; a session that
        cannot be resolved is signed out and the app continues anonymously.
        """
        state = self.state
        state.loading = True
        state.init_error = None
        state.db_setup_needed = False
        logger.info("Initializing application")
        try:
            try:
                self.auth.initialize_data()
            except HTTPException as e:
                logger.error(f"Database check failed: {e.detail}")
                if is_schema_missing(e.__cause__ or e):
                    state.db_setup_needed = True

            if access_token:
                try:
                    identity = self.auth.get_identity(access_token)
                    state.user = self.auth.get_current_user(identity)
                    state.access_token = access_token
                except HTTPException as e:
                    logger.error(f"Could not restore session: {e.detail}")
                    self.auth.signout(access_token)
                    state.user = None
                    state.access_token = None
            logger.info("Application initialized")
        except Exception as e:
            logger.error(f"Error initializing app: {e}")
            state.init_error = INIT_ERROR_MESSAGE
        finally:
            state.loading = False

    def continue_without_data(self):
        """Dismiss the setup/error screen and use the app as is"""
        self.state.init_error = None
        self.state.db_setup_needed = False
        self.state.loading = False

    # Navigation

    def navigate_to(self, page: Union[Page, str]):
        self.state.page = Page(page)

    def reset(self):
        state = self.state
        state.page = Page.HOME
        state.selected_account_type = None
        state.selected_animal_id = None
        state.selected_request_id = None
        state.chat_params = None

    # Auth

    def handle_login(self, email: str, password: str) -> ActionResult:
        try:
            result = self.auth.signin(email, password)
        except HTTPException as e:
            return ActionResult(success=False, error=str(e.detail))

        self.state.user = result.user
        self.state.access_token = result.access_token
        if result.is_admin or result.user.type == "admin":
            self.navigate_to(Page.ADMIN_DASHBOARD)
        elif self.state.selected_animal_id and result.user.type == "adopter":
            # Back to the adoption the visitor started before signing in
            self.navigate_to(Page.ADOPTION_REQUEST)
        else:
            self.navigate_to(Page.HOME)
        return ActionResult(success=True)

    def handle_admin_login(self, email: str, password: str) -> ActionResult:
        return self.handle_login(email, password)

    def handle_signup(self, signup_data: SignupRequest) -> ActionResult:
        try:
            result = self.auth.signup(signup_data)
        except HTTPException as e:
            return ActionResult(success=False, error=str(e.detail))

        self.state.user = result.user
        self.navigate_to(Page.HOME)
        return ActionResult(success=True)

    def handle_logout(self):
        self.auth.signout(self.state.access_token)
        self.state.user = None
        self.state.access_token = None
        self.reset()

    def request_create_account(self):
        self.state.show_account_type_dialog = True

    def select_account_type(self, account_type: AccountType):
        self.state.selected_account_type = account_type
        self.navigate_to(Page.CREATE_ACCOUNT)
        self.state.show_account_type_dialog = False

    def close_account_type_dialog(self):
        self.state.show_account_type_dialog = False

    # Page actions

    def start_conversation(self, animal_id: str, advertiser_id: str) -> ActionResult:
        user = self.state.user
        if not user:
            self.state.selected_animal_id = animal_id
            self.navigate_to(Page.LOGIN)
            return ActionResult(success=False, error=LOGIN_REQUIRED_MESSAGE)
        if user.type != "adopter":
            return ActionResult(success=False, error=ADOPTERS_ONLY_CHAT_MESSAGE)

        try:
            conversation = self.messaging.start_conversation(self._identity(), animal_id, advertiser_id)
        except HTTPException as e:
            logger.error(f"Could not start conversation: {e.detail}")
            return ActionResult(success=False, error=str(e.detail))

        self.state.selected_conversation_id = conversation.id
        self.navigate_to(Page.SIMPLE_CHAT)
        return ActionResult(success=True)

    def adopt_animal(self, animal_id: str) -> ActionResult:
        user = self.state.user
        if user is None:
            self.state.selected_animal_id = animal_id
            self.navigate_to(Page.LOGIN)
            return ActionResult(success=False, error=LOGIN_REQUIRED_MESSAGE)
        if user.type == "adopter":
            self.state.selected_animal_id = animal_id
            self.navigate_to(Page.ADOPTION_REQUEST)
            return ActionResult(success=True)
        if user.type == "advertiser":
            return ActionResult(success=False, error=ADVERTISER_CANNOT_ADOPT_MESSAGE)
        return ActionResult(success=False)

    def view_profile(self, user_id: str):
        self.state.viewing_profile_id = user_id
        self.navigate_to(Page.USER_PROFILE)

    def view_animal_details(self, animal_id: str):
        self.state.selected_animal_id = animal_id
        self.navigate_to(Page.ANIMAL_DETAILS if self.state.user else Page.LOGIN)

    def start_chat(self, adopter_id: str, animal_id: str):
        self.state.chat_params = ChatParams(adopter_id=adopter_id, animal_id=animal_id)
        self.navigate_to(Page.CHAT)

    def select_conversation(self, conversation_id: str):
        self.state.selected_conversation_id = conversation_id
        self.navigate_to(Page.SIMPLE_CHAT)

    def view_request(self, request_id: str):
        self.state.selected_request_id = request_id
        self.navigate_to(Page.REQUEST_DETAILS)

    def view_animal_requests(self, animal_id: str):
        self.state.selected_animal_id = animal_id
        self.navigate_to(Page.ANIMAL_REQUESTS)

    def register_animal_success(self):
        """A new listing was saved: let the advertiser dashboard reload, then show it"""
        self.events.publish(ADVERTISER_DATA_CHANGED, user_id=self.state.user.id if self.state.user else None)
        self.navigate_to(Page.DASHBOARD)

    # Rendering

    @property
    def show_footer(self) -> bool:
        return self.state.page not in FOOTERLESS_PAGES

    @property
    def show_dashboard_shortcut(self) -> bool:
        return self._is(self.state.user, "adopter") and self.state.page == Page.HOME

    def screen(self) -> Optional[PageView]:
        """Full-screen bootstrap states that replace the page entirely"""
        state = self.state
        if state.loading:
            return PageView(page=state.page, view="loading")
        if state.db_setup_needed:
            return PageView(page=state.page, view="database-setup")
        if state.init_error:
            return PageView(page=state.page, view="init-error", props={"error": state.init_error})
        return None

    def render(self) -> Optional[PageView]:
        try:
            return self._renderers().get(self.state.page, lambda: None)()
        except Exception as e:
            logger.error(f"Rendering {self.state.page.value} failed: {error_message(e)}")
            return None

    @staticmethod
    def _is(user: Optional[UserResponse], user_type: str) -> bool:
        return user is not None and user.type == user_type

    def _view(self, view: str, **props: Any) -> PageView:
        return PageView(page=self.state.page, view=view, props=props)

    def _renderers(self) -> Dict[Page, Callable[[], Optional[PageView]]]:
        state = self.state
        user = state.user
        return {
            Page.HOME: lambda: self._view("home", user=user),
            Page.SEARCH: lambda: self._view("search", user=user),
            Page.ADOPTION: lambda: self._view("responsible-adoption"),
            Page.ANIMAL_DETAILS: lambda: self._view(
                "animal-details", animal_id=state.selected_animal_id, user=user
            ) if state.selected_animal_id else None,
            Page.LOGIN: lambda: self._view("login"),
            Page.CREATE_ACCOUNT: lambda: self._view(
                "create-account", account_type=state.selected_account_type
            ) if state.selected_account_type in ("adopter", "advertiser") else None,
            Page.FORGOT_PASSWORD: lambda: self._view("forgot-password"),
            Page.ADMIN_LOGIN: lambda: self._view("admin-login"),
            Page.DASHBOARD: self._render_dashboard,
            Page.REGISTER_ANIMAL: lambda: self._view(
                "register-animal", user=user
            ) if self._is(user, "advertiser") else None,
            Page.ADMIN_DASHBOARD: lambda: self._view("admin-dashboard") if self._is(user, "admin") else None,
            Page.ADOPTION_REQUEST: lambda: self._view(
                "adoption-request", animal_id=state.selected_animal_id
            ) if state.selected_animal_id and self._is(user, "adopter") else None,
            Page.ANIMAL_REQUESTS: lambda: self._view(
                "animal-requests", animal_id=state.selected_animal_id
            ) if state.selected_animal_id and self._is(user, "advertiser") else None,
            Page.REQUESTS_PANEL: lambda: self._view("requests-panel") if self._is(user, "advertiser") else None,
            Page.REQUEST_DETAILS: lambda: self._view(
                "request-details", request_id=state.selected_request_id
            ) if state.selected_request_id else None,
            Page.CONVERSATIONS: lambda: self._view("conversations") if user else None,
            Page.CHAT: lambda: self._view(
                "chat",
                adopter_id=state.chat_params.adopter_id,
                animal_id=state.chat_params.animal_id,
                current_user_id=user.id,
                current_user_type=user.type
            ) if state.chat_params and user else None,
            Page.SIMPLE_CONVERSATIONS: lambda: self._view("simple-conversations") if user else None,
            Page.SIMPLE_CHAT: lambda: self._view(
                "simple-chat", conversation_id=state.selected_conversation_id
            ) if state.selected_conversation_id and user else None,
            Page.USER_PROFILE: lambda: self._view(
                "user-profile", user_id=state.viewing_profile_id, current_user=user
            ) if state.viewing_profile_id else None,
        }

    def _render_dashboard(self) -> Optional[PageView]:
        user = self.state.user
        if self._is(user, "advertiser"):
            return self._view("advertiser-dashboard", user=user)
        if self._is(user, "adopter"):
            return self._view("adopter-dashboard", user=user)
        return None
