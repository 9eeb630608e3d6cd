from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

if TYPE_CHECKING:
    from discord import app_commands

    from ..bot import DropsBot

logger = logging.getLogger(__name__)

# Command modules, loaded in this order. Each exposes register(bot, tree).
MODULES: Sequence[str] = (
    "core",       # /ping, /help, /link
    "drops",      # /drops, /search, /top
    "account",    # /stats, /balance, /profile, /vip, /daily
    "community",  # /leaderboard, /services, /announcements
)

# Startup aborts unless every one of these registers.
REQUIRED_MODULES: Sequence[str] = (
    "core",
    "drops",
    "account",
)

__all__ = ["register_all", "MODULES", "REQUIRED_MODULES"]


def _should_register(module_name: str, allow: Optional[Sequence[str]], deny: Optional[Sequence[str]]) -> bool:
    """
    allow wins over deny; with neither, every module loads.
    """
    if allow is not None:
        return module_name in set(allow)
    if deny is not None:
        return module_name not in set(deny)
    return True


def _load(mod_path: str) -> object:
    """
    importlib.import_module, with the failure turned into a short reason.

    Raises LookupError(reason). "missing module" is reserved for the command
    module itself not existing; a dependency it imports that is missing is
    reported as an import error.
    """
    try:
        return importlib.import_module(mod_path)
    except ModuleNotFoundError as e:
        missing = getattr(e, "name", "") or ""
        if missing == mod_path or missing.startswith(mod_path + "."):
            raise LookupError(f"missing module: {missing}") from e
        raise LookupError(f"import error (dependency missing): {missing or e}") from e
    except Exception as e:
        raise LookupError(f"import error: {e}") from e


def _register_module(bot: "DropsBot", tree: "app_commands.CommandTree", mod_path: str) -> str:
    """
    Import one module and call its register(). Returns the status for the summary;
    raises LookupError(status) when the module could not be used.
    """
    try:
        mod = _load(mod_path)
    except LookupError as e:
        raise LookupError(f"not loaded ({e})") from e

    register = getattr(mod, "register", None)
    if not callable(register):
        raise LookupError("loaded but missing register()")

    try:
        register(bot, tree)
    except Exception as e:
        logger.exception("register() failed for %s", mod_path)
        raise LookupError(f"register failed: {e}") from e
    return "registered"


def register_all(
    bot: "DropsBot",
    tree: "app_commands.CommandTree",
    *,
    allow: Optional[Sequence[str]] = None,
    deny: Optional[Sequence[str]] = None,
) -> Dict[str, str]:
    """
    Fill bot.registry and the CommandTree from every enabled module in MODULES.

    Returns {module: status}. Raises RuntimeError naming each REQUIRED_MODULES
    entry that was enabled but could not be registered.
    """
    results: Dict[str, str] = {}
    broken: List[str] = []

    for name in MODULES:
        if not _should_register(name, allow, deny):
            results[name] = "skipped (allow/deny)"
            continue
        try:
            results[name] = _register_module(bot, tree, f"{__name__}.{name}")
        except LookupError as e:
            results[name] = str(e)
            if name in REQUIRED_MODULES:
                broken.append(f"{name}: {e}")

    logger.info("command modules: %s", ", ".join(f"{name}={results[name]}" for name in MODULES))

    if broken:
        msg = "Required command modules failed: " + "; ".join(broken)
        logger.error(msg)
        raise RuntimeError(msg)
    return results
