from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

class NewsArticle(BaseModel):
    """
    News article as returned by the news provider, after filtering.
    """
    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: str
    url: str
    image_url: Optional[str] = Field(None, alias="urlToImage")
    published_at: Optional[datetime] = Field(None, alias="publishedAt")
    source: str


class NewsPage(BaseModel):
    """One page of search results plus pagination metadata."""
    model_config = ConfigDict(populate_by_name=True)

    articles: List[NewsArticle] = Field(default_factory=list)
    total_results: int = Field(0, alias="totalResults")
    status: str = "ok"
    page: int = 1
