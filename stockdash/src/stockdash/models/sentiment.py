from enum import Enum
from pydantic import BaseModel

NO_EXPLANATION = "No explanation available."


class MarketImpact(str, Enum):
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"


class SentimentResult(BaseModel):
    """
    Market-impact classification of one news article.
    """
    impact: MarketImpact = MarketImpact.NEUTRAL
    explanation: str = NO_EXPLANATION
    # True when extracted article text was analysed instead of the description
    used_full_text: bool = False
