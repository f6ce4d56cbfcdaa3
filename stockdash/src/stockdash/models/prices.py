from datetime import date
from pydantic import BaseModel, ConfigDict, Field

class HistoryPoint(BaseModel):
    """
    Single point of a historical close series.
    """
    model_config = ConfigDict(populate_by_name=True)

    date: date
    close_price: float = Field(alias="closePrice")
    volume: int = 0
