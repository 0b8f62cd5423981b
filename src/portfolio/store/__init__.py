"""Content-addressed store — ipfs:// locators, pinning and gateway fetches."""

from portfolio.store.ipfs import IpfsStore
from portfolio.store.locator import Locator, is_locator

__all__ = ["IpfsStore", "Locator", "is_locator"]
