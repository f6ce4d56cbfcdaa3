from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class QuoteRecord(BaseModel):
    """
    Point-in-time price snapshot for one symbol.
    """
    model_config = ConfigDict(populate_by_name=True)

    symbol: str
    display_name: str = Field(alias="displayName")
    price: Optional[float] = None
    change: Optional[float] = None
    change_percent: Optional[float] = Field(None, alias="changePercent")
    currency: Optional[str] = None


class StockDetails(QuoteRecord):
    """
    Quote plus the descriptive fields shown on a single-stock page.
    """
    long_name: Optional[str] = Field(None, alias="longName")

    day_high: Optional[float] = Field(None, alias="dayHigh")
    day_low: Optional[float] = Field(None, alias="dayLow")
    volume: Optional[int] = None
    average_volume: Optional[int] = Field(None, alias="averageVolume")
    market_cap: Optional[int] = Field(None, alias="marketCap")

    fifty_two_week_high: Optional[float] = Field(None, alias="fiftyTwoWeekHigh")
    fifty_two_week_low: Optional[float] = Field(None, alias="fiftyTwoWeekLow")

    trailing_pe: Optional[float] = Field(None, alias="trailingPE")
    dividend_yield: Optional[float] = Field(None, alias="dividendYield")
