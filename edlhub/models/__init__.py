from .category import Category
from .indicator import Indicator
from .whitelist import WhitelistEntry

__all__ = ["Category", "Indicator", "WhitelistEntry"]
