from enum import Enum
from pydantic import BaseModel
from typing import Any, Dict


class Page(str, Enum):
    HOME = "home"
    SEARCH = "search"
    ADOPTION = "adoption"
    ANIMAL_DETAILS = "animal-details"
    LOGIN = "login"
    CREATE_ACCOUNT = "create-account"
    FORGOT_PASSWORD = "forgot-password"
    ADMIN_LOGIN = "admin-login"
    DASHBOARD = "dashboard"
    REGISTER_ANIMAL = "register-animal"
    ADMIN_DASHBOARD = "admin-dashboard"
    ADOPTION_REQUEST = "adoption-request"
    ANIMAL_REQUESTS = "animal-requests"
    REQUESTS_PANEL = "requests-panel"
    REQUEST_DETAILS = "request-details"
    CONVERSATIONS = "conversations"
    CHAT = "chat"
    SIMPLE_CONVERSATIONS = "simple-conversations"
    SIMPLE_CHAT = "simple-chat"
    USER_PROFILE = "user-profile"


# Pages rendered without the site footer
FOOTERLESS_PAGES = frozenset({
    Page.CREATE_ACCOUNT, Page.LOGIN, Page.FORGOT_PASSWORD, Page.REGISTER_ANIMAL,
    Page.DASHBOARD, Page.ANIMAL_REQUESTS, Page.CHAT, Page.ADOPTION_REQUEST,
    Page.REQUESTS_PANEL, Page.REQUEST_DETAILS, Page.CONVERSATIONS,
    Page.SIMPLE_CONVERSATIONS, Page.SIMPLE_CHAT, Page.ADMIN_LOGIN,
    Page.ADMIN_DASHBOARD, Page.USER_PROFILE,
})


class PageView(BaseModel):
    """What to mount: a view name plus the props it is given"""
    page: Page
    view: str
    props: Dict[str, Any] = {}
