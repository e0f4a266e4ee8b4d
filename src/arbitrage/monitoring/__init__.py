from .telegram_alerts import ArbitrageAlerts

__all__ = ["ArbitrageAlerts"]
