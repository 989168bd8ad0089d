import sys

from sticker_clone_bot.app import main


if __name__ == "__main__":
    try:
        main()
    except ValueError as exc:
        text = str(exc)
        if text.startswith("TELEGRAM_") or text.startswith("REDIS_"):
            print(f"Bot config error: {text}", file=sys.stderr)
            print("Fill TELEGRAM_BOT_TOKEN and REDIS_URL in .env.", file=sys.stderr)
            raise SystemExit(2)
        raise
