"""
Market price refresh for investment holdings.

Prices are fetched from Alpha Vantage one symbol at a time, spaced to respect
the free-tier rate limit, and cached for a configurable lifetime. Refreshing
happens before a projection runs; the simulator only ever reads
`Holding.current_price`.
"""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Literal, Optional, Protocol, Tuple, TypeVar

import numpy as np
import requests
from pydantic import BaseModel, Field
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import Settings
from ..models.accounts import CASH_TICKER, Account, Currency

logger = logging.getLogger(__name__)

CANADIAN_SUFFIXES = (".TO", ".TSX", ".V")
CLASS_SHARE_MARKERS = (".A", ".B", ".UN")

# Monthly observations needed before historical returns are trusted
MIN_MONTHS_LIMITED = 12
MIN_MONTHS_RELIABLE = 60

DataQuality = Literal["reliable", "limited", "insufficient"]
ProgressCallback = Callable[[int, int, str], None]

T = TypeVar("T")


class PriceFetchError(Exception):
    """Raised when a quote cannot be obtained from the price source."""

    pass


class PriceQuote(BaseModel):
    """Latest price for a ticker, or the reason none is available."""

    ticker: str
    price: float = Field(..., ge=0)
    currency: Currency = "USD"
    last_updated: datetime = Field(default_factory=datetime.now)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.price > 0


class HistoricalReturn(BaseModel):
    """Annualized return statistics derived from monthly price history."""

    ticker: str
    growth_rate: float = Field(default=0.0, description="Annualized price growth (decimal)")
    dividend_yield: float = Field(default=0.0, description="Trailing 12-month yield (decimal)")
    volatility: float = Field(default=0.0, ge=0, description="Annualized volatility")
    months_of_data: int = Field(default=0, ge=0)
    data_quality: DataQuality = "insufficient"
    warning: Optional[str] = None
    error: Optional[str] = None

    @property
    def years_of_data(self) -> float:
        return self.months_of_data / 12


class TTLCache(Generic[T]):
    """In-memory cache whose entries expire after a fixed lifetime."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[float, T]] = {}

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: T) -> None:
        self._entries[key] = (self._clock(), value)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class QuoteSource(Protocol):
    """Anything able to return quotes and monthly history for a symbol."""

    def fetch_quote(self, symbol: str) -> float:
        ...

    def fetch_monthly_history(self, symbol: str) -> List[Tuple[str, float, float]]:
        ...


class AlphaVantageClient:
    """Client for the Alpha Vantage quote and time-series endpoints."""

    def __init__(self, api_key: str, base_url: str, timeout: float = 30.0):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry strategy."""
        session = requests.Session()

        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def _get(self, function: str, symbol: str) -> Dict[str, Any]:
        params = {"function": function, "symbol": symbol, "apikey": self.api_key}
        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching {function} for {symbol}: {e}")
            raise PriceFetchError(f"Request for {symbol} failed: {e}") from e

        if "Error Message" in data:
            raise PriceFetchError(data["Error Message"])
        if "Note" in data or "Information" in data:
            raise PriceFetchError("API rate limit exceeded. Please try again later.")
        return data

    def fetch_quote(self, symbol: str) -> float:
        """
        Fetch the latest price for a symbol.

        Args:
            symbol: Exchange-qualified symbol, e.g. XEQT.TO

        Returns:
            Latest traded price

        Raises:
            PriceFetchError: If the API reports an error or returns no usable price
        """
        data = self._get("GLOBAL_QUOTE", symbol)
        quote = data.get("Global Quote")
        if not quote:
            raise PriceFetchError(f"No price data found for {symbol}")

        raw_price = quote.get("05. price")
        try:
            price = float(raw_price)
        except (TypeError, ValueError):
            raise PriceFetchError(f"Invalid price value for {symbol}: {raw_price}") from None
        if price <= 0:
            raise PriceFetchError(f"Invalid price value for {symbol}: {raw_price}")
        return price

    def fetch_monthly_history(self, symbol: str) -> List[Tuple[str, float, float]]:
        """
        Fetch monthly closes and dividends, oldest first.

        Returns:
            (month, close, dividend) tuples
        """
        data = self._get("TIME_SERIES_MONTHLY_ADJUSTED", symbol)
        series = data.get("Monthly Adjusted Time Series")
        if not series:
            raise PriceFetchError(f"No monthly history found for {symbol}")

        history = []
        for month in sorted(series):
            row = series[month]
            try:
                close = float(row["5. adjusted close"])
                dividend = float(row.get("7. dividend amount", 0.0))
            except (KeyError, TypeError, ValueError) as e:
                raise PriceFetchError(f"Malformed history row for {symbol}: {e}") from e
            history.append((month, close, dividend))
        return history


def currency_for_ticker(ticker: str) -> Currency:
    """Canadian exchange suffixes quote in CAD; everything else in USD."""
    upper = ticker.upper()
    if any(suffix in upper for suffix in CANADIAN_SUFFIXES):
        return "CAD"
    return "USD"


def symbol_candidates(ticker: str) -> List[Tuple[str, Currency]]:
    """
    Symbols to try for a ticker, in order, with the currency each implies.

    Bare tickers are tried on the TSX first and then as US listings. Class
    shares (BTCC.B, REI.UN) are tried with a .TO suffix, then as the base
    ticker on the TSX, then as given.
    """
    upper = ticker.upper()
    if any(marker in upper for marker in CLASS_SHARE_MARKERS) and not upper.endswith(
        CANADIAN_SUFFIXES
    ):
        base = upper.split(".")[0]
        return [(f"{upper}.TO", "CAD"), (f"{base}.TO", "CAD"), (upper, "CAD")]
    if "." not in upper:
        return [(f"{upper}.TO", "CAD"), (upper, "USD")]
    return [(upper, currency_for_ticker(upper))]


def classify_data_quality(months: int) -> DataQuality:
    if months < MIN_MONTHS_LIMITED:
        return "insufficient"
    if months < MIN_MONTHS_RELIABLE:
        return "limited"
    return "reliable"


class PriceService:
    """Cached, rate-limited price lookups for holdings."""

    def __init__(
        self,
        source: QuoteSource,
        price_ttl_seconds: float = 300.0,
        historical_ttl_seconds: float = 86400.0,
        request_interval_seconds: float = 12.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.request_interval_seconds = request_interval_seconds
        self.price_cache: TTLCache[PriceQuote] = TTLCache(price_ttl_seconds, clock)
        self.historical_cache: TTLCache[HistoricalReturn] = TTLCache(
            historical_ttl_seconds, clock
        )
        self._sleep = sleep
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PriceService":
        """Build a service backed by Alpha Vantage using application settings."""
        if not settings.alpha_vantage_api_key:
            raise ValueError("ALPHA_VANTAGE_API_KEY is required for price refresh")
        client = AlphaVantageClient(
            api_key=settings.alpha_vantage_api_key,
            base_url=settings.alpha_vantage_base_url,
            timeout=settings.price_request_timeout,
        )
        return cls(
            client,
            price_ttl_seconds=settings.price_cache_ttl_seconds,
            historical_ttl_seconds=settings.historical_cache_ttl_seconds,
            request_interval_seconds=settings.price_request_interval_seconds,
        )

    def fetch_price(self, ticker: str) -> PriceQuote:
        """
        Latest price for a ticker.

        CASH is always 1.0 and never fetched. Failures are returned as a quote
        with price 0 and an error message rather than raised.
        """
        if ticker.upper() == CASH_TICKER:
            return PriceQuote(ticker=CASH_TICKER, price=1.0, currency="CAD")

        cached = self.price_cache.get(ticker)
        if cached is not None:
            return cached

        last_error = "Unknown error"
        for symbol, currency in symbol_candidates(ticker):
            try:
                price = self.source.fetch_quote(symbol)
            except PriceFetchError as e:
                last_error = str(e)
                self.logger.debug(f"Quote for {symbol} failed: {e}")
                continue
            quote = PriceQuote(ticker=ticker, price=price, currency=currency)
            self.price_cache.set(ticker, quote)
            return quote

        self.logger.warning(f"Could not fetch price for {ticker}: {last_error}")
        return PriceQuote(
            ticker=ticker, price=0.0, currency=currency_for_ticker(ticker), error=last_error
        )

    def fetch_prices(
        self,
        tickers: List[str],
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> List[PriceQuote]:
        """
        Prices for several tickers.

        CASH and cached tickers are answered immediately. The rest are fetched
        one at a time with `request_interval_seconds` between calls. The batch
        stops early when `should_cancel` returns True.

        Args:
            tickers: Tickers to price
            on_progress: Called with (index, total, ticker) before each fetch
            should_cancel: Polled before each fetch

        Returns:
            Quotes for every ticker answered before cancellation
        """
        results: List[PriceQuote] = []
        to_fetch: List[str] = []
        for ticker in tickers:
            if ticker.upper() == CASH_TICKER:
                results.append(self.fetch_price(ticker))
                continue
            cached = self.price_cache.get(ticker)
            if cached is not None:
                results.append(cached)
            else:
                to_fetch.append(ticker)

        total = len(to_fetch)
        for index, ticker in enumerate(to_fetch):
            if should_cancel is not None and should_cancel():
                self.logger.info(f"Price refresh cancelled after {index} of {total} tickers")
                break
            if index > 0 and self.request_interval_seconds > 0:
                self._sleep(self.request_interval_seconds)
            if on_progress is not None:
                on_progress(index + 1, total, ticker)
            results.append(self.fetch_price(ticker))

        return results

    def fetch_historical_return(
        self, ticker: str, force_refresh: bool = False
    ) -> HistoricalReturn:
        """
        Annualized growth, trailing yield and volatility from monthly history.

        Args:
            ticker: Ticker to analyse
            force_refresh: Ignore any cached result

        Returns:
            The statistics with a data-quality label; errors are reported on
            the result rather than raised
        """
        if not force_refresh:
            cached = self.historical_cache.get(ticker)
            if cached is not None:
                return cached

        history = None
        last_error = "Unknown error"
        for symbol, _ in symbol_candidates(ticker):
            try:
                history = self.source.fetch_monthly_history(symbol)
                break
            except PriceFetchError as e:
                last_error = str(e)
        if history is None:
            self.logger.warning(f"Could not fetch history for {ticker}: {last_error}")
            return HistoricalReturn(ticker=ticker, error=last_error)

        result = summarize_history(ticker, history)
        self.historical_cache.set(ticker, result)
        return result


def summarize_history(ticker: str, history: List[Tuple[str, float, float]]) -> HistoricalReturn:
    """Compute annualized statistics from (month, close, dividend) rows, oldest first."""
    months = len(history)
    quality = classify_data_quality(months)
    if months < 2:
        return HistoricalReturn(
            ticker=ticker,
            months_of_data=months,
            data_quality=quality,
            warning="Not enough history to estimate returns",
        )

    closes = np.array([row[1] for row in history], dtype=np.float64)
    dividends = np.array([row[2] for row in history], dtype=np.float64)
    if np.any(closes <= 0):
        return HistoricalReturn(
            ticker=ticker,
            months_of_data=months,
            data_quality="insufficient",
            error="History contains non-positive prices",
        )

    periods = months - 1
    growth = (closes[-1] / closes[0]) ** (12 / periods) - 1
    monthly_returns = np.diff(closes) / closes[:-1]
    volatility = float(np.std(monthly_returns, ddof=1) * np.sqrt(12)) if periods > 1 else 0.0
    dividend_yield = float(dividends[-12:].sum() / closes[-1])

    warning = None
    if quality != "reliable":
        warning = f"Only {months} months of history available for {ticker}"

    return HistoricalReturn(
        ticker=ticker,
        growth_rate=float(growth),
        dividend_yield=dividend_yield,
        volatility=volatility,
        months_of_data=months,
        data_quality=quality,
        warning=warning,
    )


def refresh_holding_prices(
    accounts: List[Account],
    price_service: PriceService,
    on_progress: Optional[ProgressCallback] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> List[Account]:
    """
    Return copies of the accounts with refreshed holding prices.

    CASH holdings are never part of the batch. Holdings whose quote failed
    keep their previous price.
    """
    tickers = sorted(
        {
            holding.ticker
            for account in accounts
            for holding in account.holdings
            if not holding.is_cash
        }
    )
    quotes = {
        quote.ticker: quote
        for quote in price_service.fetch_prices(tickers, on_progress, should_cancel)
        if quote.ok
    }

    refreshed = []
    for account in accounts:
        holdings = []
        for holding in account.holdings:
            quote = quotes.get(holding.ticker)
            if quote is None or holding.is_cash:
                holdings.append(holding)
                continue
            holdings.append(
                holding.model_copy(
                    update={
                        "current_price": quote.price,
                        "currency": quote.currency,
                        "last_price_update": quote.last_updated,
                    }
                )
            )
        refreshed.append(account.model_copy(update={"holdings": holdings}))
    return refreshed
