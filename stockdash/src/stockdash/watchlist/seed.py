from pathlib import Path
from typing import List
import yaml
from ..errors import ValidationError


def load_seed(path: str = "watchlist.yaml") -> List[str]:
    """
    Load symbols to import into the watchlist from YAML.
    Expected shape:
      watchlist:
        symbols: [AAPL, MSFT]
    """
    p = Path(path)
    if not p.exists():
        raise ValidationError(f"Watchlist file not found: {path}")

    try:
        data = yaml.safe_load(p.read_text()) or {}
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid watchlist YAML: {e}")

    if not isinstance(data, dict) or not isinstance(data.get("watchlist"), dict):
        raise ValidationError("Watchlist file must contain a 'watchlist' object.")

    symbols = data["watchlist"].get("symbols")
    if not isinstance(symbols, list) or not symbols:
        raise ValidationError("'watchlist.symbols' must be a non-empty list.")

    norm = []
    for s in symbols:
        if not isinstance(s, str) or not s.strip():
            raise ValidationError("All symbols must be non-empty strings.")
        norm.append(s.strip().upper())

    return norm
