from adotai.navigation.events import EventBus, ADVERTISER_DATA_CHANGED
from adotai.navigation.pages import Page, PageView
from adotai.navigation.switchboard import Switchboard, ActionResult

__all__ = ["EventBus", "ADVERTISER_DATA_CHANGED", "Page", "PageView", "Switchboard", "ActionResult"]
