"""
Bot entrypoint.

Operator notes:
- This file should remain extremely small and boring.
- All configuration validation happens inside run_bot().
- If this file crashes, the error should be immediately obvious to the operator.
"""

import logging
import sys

from dropsbot.discord.bot import run_bot


def main() -> None:
    try:
        run_bot()
    except Exception:
        # Fail loud and early with a clear signal for operators.
        logging.basicConfig(level=logging.ERROR)
        logging.exception("Discord bot failed to start.")
        print("\n❌ Discord bot failed to start.")
        print("   See error above. Most common causes:")
        print("   - DISCORD_TOKEN missing or not loaded into the environment")
        print("   - DATABASE_URL missing or unreachable")
        print("   - BOT_WEBHOOK_SECRET missing while BOT_WEBHOOK_ENABLED=true")
        print("   - BOT_PORT already in use by another process\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
