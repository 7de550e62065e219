"""Screen models: semantic locators and composite actions per screen."""

from .base import (
    CHROME_LOCATORS,
    ScreenModel,
    ScreenRegistry,
    SessionGuard,
    locate,
    testid,
)
from .capabilities import Filterable, FilterPanel, Navigable, Navigator, Searchable, SearchBox
from .chrome import ChromeModel
from .sign_in import SignInScreen
from .dashboard import DashboardScreen
from .organizations import OrganizationsScreen, WIZARD_STEPS
from .feedback import FeedbackScreen, FEEDBACK_TYPES
from .meetings import MeetingsScreen

__all__ = [
    "CHROME_LOCATORS",
    "ScreenModel",
    "ScreenRegistry",
    "SessionGuard",
    "locate",
    "testid",
    "Navigable",
    "Searchable",
    "Filterable",
    "Navigator",
    "SearchBox",
    "FilterPanel",
    "ChromeModel",
    "SignInScreen",
    "DashboardScreen",
    "OrganizationsScreen",
    "WIZARD_STEPS",
    "FeedbackScreen",
    "FEEDBACK_TYPES",
    "MeetingsScreen",
]
