import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import bot
from musicbot.errors import ConfigError, GatewayError


class MainTests(unittest.TestCase):
    def test_missing_dotenv_is_fatal(self) -> None:
        with patch.object(bot, "load_dotenv", return_value=False), patch.object(bot, "Bridge") as bridge_cls:
            self.assertEqual(bot.main(), 1)
        bridge_cls.assert_not_called()

    def test_config_error_is_fatal(self) -> None:
        with patch.object(bot, "load_dotenv", return_value=True), \
                patch.object(bot, "configure_logging"), \
                patch.object(bot.BridgeConfig, "from_env", side_effect=ConfigError("DISCORD_TOKEN missing")):
            self.assertEqual(bot.main(), 1)

    def test_runs_bridge(self) -> None:
        bridge = MagicMock()
        bridge.run = AsyncMock()
        with patch.object(bot, "load_dotenv", return_value=True), \
                patch.object(bot, "configure_logging"), \
                patch.object(bot.BridgeConfig, "from_env", return_value="config"), \
                patch.object(bot, "Bridge", return_value=bridge) as bridge_cls:
            self.assertEqual(bot.main(), 0)
        bridge_cls.assert_called_once_with("config")
        bridge.run.assert_awaited_once()

    def test_lost_gateway_exits_non_zero(self) -> None:
        bridge = MagicMock()
        bridge.run = AsyncMock(side_effect=GatewayError("discord connection lost"))
        with patch.object(bot, "load_dotenv", return_value=True), \
                patch.object(bot, "configure_logging"), \
                patch.object(bot.BridgeConfig, "from_env", return_value="config"), \
                patch.object(bot, "Bridge", return_value=bridge):
            self.assertEqual(bot.main(), 1)
