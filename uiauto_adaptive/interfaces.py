"""
@file interfaces.py
@brief Capabilities the surrounding element/page layer supplies to the core.

The core never talks to a driver directly. It receives handles that can be
probed and a resolver that turns locators into handles; both are defined here
as abstract base classes so that any backend (Appium, Selenium, pywinauto)
can plug in with a thin adapter.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, List, Optional

if TYPE_CHECKING:
    from .locator import Locator


class IHandle(ABC):
    """
    Remotely-resolved UI element.

    Every method may raise to signal that the handle became invalid; callers
    in the core treat such raises as "not satisfied" instead of propagating.
    """

    @abstractmethod
    def is_displayed(self) -> bool:
        """Return True if the element is rendered and visible."""
        pass

    @abstractmethod
    def is_enabled(self) -> bool:
        """Return True if the element accepts input."""
        pass

    @abstractmethod
    def get_text(self) -> str:
        """Return the element's text content."""
        pass

    @abstractmethod
    def get_attribute(self, name: str) -> Optional[str]:
        """Return an attribute value, or None when the attribute is absent."""
        pass

    @abstractmethod
    def click(self) -> None:
        """Tap/click the element."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear an editable element."""
        pass

    @abstractmethod
    def send_keys(self, text: str) -> None:
        """Type text into the element."""
        pass


class ILocatorResolver(ABC):
    """
    Resolves locators to handles.

    Implementations raise ElementNotFoundError when nothing matches.
    """

    @abstractmethod
    def resolve(self, locator: "Locator") -> Any:
        """
        Resolve a single handle.

        Args:
            locator: Locator description

        Returns:
            Backend-specific handle
        """
        pass

    @abstractmethod
    def resolve_all(self, locator: "Locator") -> List[Any]:
        """
        Resolve every handle matching the locator.

        Args:
            locator: Locator description

        Returns:
            List of handles (may be empty)
        """
        pass
