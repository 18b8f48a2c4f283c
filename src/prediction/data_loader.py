import asyncio
from datetime import datetime, timedelta
from typing import Optional

import pandas as pd
import yfinance as yf

from src.utils.logging import get_logger


logger = get_logger(__name__)


class HistoricalDataLoader:
    """Load historical daily closes for signal computation."""

    async def fetch_closes(self, symbol: str, days: int = 180) -> Optional[pd.Series]:
        """
        Fetch daily closing prices from yfinance.

        Returns a Series indexed by date, or None when nothing usable came back.
        """
        end_date = datetime.now()
        start_date = end_date - timedelta(days=days)

        def _download():
            return yf.Ticker(symbol).history(start=start_date, end=end_date)

        try:
            df = await asyncio.to_thread(_download)
        except Exception as e:
            logger.error(f"Error fetching data for {symbol}: {e}")
            return None

        if df is None or df.empty:
            logger.warning(f"No data returned for {symbol}")
            return None

        if "Close" not in df.columns:
            logger.error(f"Missing Close column for {symbol}")
            return None

        closes = df["Close"].dropna()
        logger.info(f"Fetched {len(closes)} bars for {symbol}")
        return closes
