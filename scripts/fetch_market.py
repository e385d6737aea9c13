import sys
from pathlib import Path
sys.path.append(str(Path(__file__).resolve().parents[1]))

import asyncio

from cryptodash.config.logging_config import configure_logging
from cryptodash.config.settings import get_settings
from cryptodash.services.market_data import build_adapter


async def main(coin_id: str | None = None):
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    adapter = build_adapter(settings.adapter_config())

    coins = await adapter.fetch_top_coins()
    print(f"✅ {settings.MARKET_PROVIDER} ({settings.MARKET_MODE}) top coins:", len(coins))
    for coin in coins[:10]:
        print(f"  #{coin.market_cap_rank:<3} {coin.symbol:<6} {coin.current_price_usd:>14.4f} USD")

    target = coin_id or (coins[0].id if coins else None)
    if target is None:
        return

    detail, history = await asyncio.gather(
        adapter.fetch_coin_detail(target),
        adapter.fetch_coin_history(target, 7),
    )
    md = detail.market_data
    print(f"✅ {detail.name}: high_24h={md.high_24h_usd} low_24h={md.low_24h_usd} ath={md.ath_usd}")
    print("✅ 7d history points:", len(history))


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None))
