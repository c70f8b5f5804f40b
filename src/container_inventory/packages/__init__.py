"""Package database parsers, selected by analyzer name."""

from typing import Dict, Type

from ..exceptions import ConfigurationError
from .apk import ApkParser
from .apt import AptParser
from .base import PackageParser
from .models import Inventory, PackageInfo, ParseAnomaly, ParseResult
from .rpm import RpmParser

ANALYZERS: Dict[str, Type[PackageParser]] = {
    AptParser.name: AptParser,
    ApkParser.name: ApkParser,
    RpmParser.name: RpmParser,
}


def get_parser(name: str) -> PackageParser:
    """Instantiate the parser registered under ``name``.

    Raises:
        ConfigurationError: If no analyzer has that name
    """
    try:
        return ANALYZERS[name]()
    except KeyError:
        raise ConfigurationError(f"Argument {name} is not a valid analyzer") from None


__all__ = [
    "ANALYZERS",
    "ApkParser",
    "AptParser",
    "Inventory",
    "PackageInfo",
    "PackageParser",
    "ParseAnomaly",
    "ParseResult",
    "RpmParser",
    "get_parser",
]
