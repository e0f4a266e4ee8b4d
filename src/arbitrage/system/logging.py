"""
Centralized Logger with Rich Console
====================================
Rich for console output, Loguru for rotating file logs.

Usage:
    from arbitrage.system.logging import Logger

    Logger.info("[DETECTOR] Scan complete")
    Logger.success("[EXECUTOR] Bundle landed")
    Logger.warning("Something concerning")
    Logger.error("Something broke")
    Logger.section("Starting Engine")

A leading "[SOURCE]" tag is parsed out of each message and used for
the source column and icon.
"""

import os
from datetime import datetime
from typing import Any, Dict, Optional

from loguru import logger as loguru_logger
from rich.console import Console
from rich.text import Text

# No sinks until configure_logging() runs; keeps library use quiet.
loguru_logger.remove()

_console = Console()

LOG_DIR = os.path.join(os.getcwd(), "logs")


# =============================================================================
# STYLE CONFIGURATION
# =============================================================================

SOURCE_ICONS = {
    "SYSTEM": "🛸",
    "DETECTOR": "🔍",
    "GRAPH": "📐",
    "RISK": "🛡️",
    "EXECUTOR": "💰",
    "JITO": "🚀",
    "FEED": "📡",
    "WALLET": "🔐",
    "COMMS": "📣",
}

LEVEL_STYLES = {
    "INFO": "cyan",
    "SUCCESS": "green bold",
    "WARNING": "yellow",
    "ERROR": "red bold",
    "DEBUG": "dim",
    "CRITICAL": "red bold reverse",
}

_LEVEL_ORDER = {"DEBUG": 10, "INFO": 20, "SUCCESS": 25, "WARNING": 30, "ERROR": 40, "CRITICAL": 50}


def configure_logging(
    level: str = "INFO",
    log_to_file: bool = True,
    log_dir: Optional[str] = None,
) -> None:
    """
    Wire the log sinks once at startup.

    Args:
        level: Minimum console level (DEBUG shows file-only messages too)
        log_to_file: Add rotating text and JSONL file sinks
        log_dir: Directory for log files (default: ./logs)
    """
    Logger._console_level = _LEVEL_ORDER.get(level.upper(), 20)

    loguru_logger.remove()
    if not log_to_file:
        return

    target = log_dir or LOG_DIR
    os.makedirs(target, exist_ok=True)

    loguru_logger.add(
        os.path.join(target, "arbitrage_{time:YYYY-MM-DD}.log"),
        rotation="10 MB",
        retention="7 days",
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:8} | {message}",
        level=level.upper(),
    )

    # Structured log for trade analysis
    loguru_logger.add(
        os.path.join(target, "arbitrage_structured.jsonl"),
        rotation="50 MB",
        retention="3 days",
        serialize=True,
        level="DEBUG",
    )


# =============================================================================
# LOGGER CLASS
# =============================================================================

class Logger:
    """
    Static logging facade used across the engine.

    Console output goes through Rich; every message is also routed to
    Loguru, which writes to whatever file sinks configure_logging() set up.
    """

    _console_level = 20

    @staticmethod
    def _timestamp() -> str:
        """High-precision timestamp (HH:MM:SS.ms)."""
        now = datetime.now()
        return f"{now.strftime('%H:%M:%S')}.{now.microsecond // 1000:03d}"

    @staticmethod
    def _parse_source(message: str) -> tuple:
        """Extract [SOURCE] tag from message if present."""
        stripped = message.strip()
        if stripped.startswith("[") and "]" in stripped:
            tag_end = stripped.index("]")
            source = stripped[1:tag_end].upper()
            if 0 < len(source) < 15:
                return source, stripped[tag_end + 1:].strip()
        return "SYSTEM", message

    @staticmethod
    def _format_console(level: str, message: str, source: str) -> None:
        if _LEVEL_ORDER.get(level, 20) < Logger._console_level:
            return

        icon = SOURCE_ICONS.get(source, "")
        line = Text()
        line.append(f"{Logger._timestamp()} ", style="dim")
        line.append(f"| {level[:8].ljust(8)} ", style=LEVEL_STYLES.get(level, "white"))
        line.append(f"| {source[:10].ljust(10)} | ", style="dim")
        line.append(f"{icon} {message}" if icon else message)
        _console.print(line)

    @staticmethod
    def _log_to_file(level: str, message: str, source: str, **extra: Any) -> None:
        loguru_logger.bind(source=source, **extra).log(level, f"[{source}] {message}")

    @staticmethod
    def _emit(level: str, message: str, **extra: Any) -> None:
        source, msg = Logger._parse_source(message)
        Logger._format_console(level, msg, source)
        Logger._log_to_file(level, msg, source, **extra)

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    @staticmethod
    def info(message: str, **extra: Any) -> None:
        Logger._emit("INFO", message, **extra)

    @staticmethod
    def success(message: str, **extra: Any) -> None:
        Logger._emit("SUCCESS", message, **extra)

    @staticmethod
    def warning(message: str, **extra: Any) -> None:
        Logger._emit("WARNING", message, **extra)

    @staticmethod
    def error(message: str, **extra: Any) -> None:
        Logger._emit("ERROR", message, **extra)

    @staticmethod
    def debug(message: str, **extra: Any) -> None:
        Logger._emit("DEBUG", message, **extra)

    @staticmethod
    def critical(message: str, **extra: Any) -> None:
        Logger._emit("CRITICAL", f"🛑 {message}", **extra)

    @staticmethod
    def section(title: str) -> None:
        """Print a section header."""
        _console.print()
        _console.rule(f"[bold magenta]{title}[/]", style="dim")
        Logger._log_to_file("INFO", f"=== {title} ===", "SYSTEM")


# =============================================================================
# DOMAIN HELPERS
# =============================================================================

def log_opportunity(data: Dict[str, Any]) -> None:
    """Log a detected opportunity with its structured fields."""
    Logger.info(
        f"[DETECTOR] 🎯 Opportunity {data.get('buy_dex')} → {data.get('sell_dex')} "
        f"| {data.get('spread_bps', 0.0):.2f} bps | est ${data.get('estimated_profit', 0.0):.4f}",
        opportunity=data,
    )


def log_trade(data: Dict[str, Any]) -> None:
    """Log a trade outcome; failures go to the error level."""
    label = data.get("type", "TRADE")
    if data.get("success"):
        Logger.success(f"[EXECUTOR] ✅ {label} executed on {data.get('dex')}", trade=data)
    else:
        Logger.error(
            f"[EXECUTOR] ❌ {label} failed on {data.get('dex')}: {data.get('error')}",
            trade=data,
        )
