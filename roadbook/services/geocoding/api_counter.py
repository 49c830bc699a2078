"""
API Call Counter - per-provider daily call budget
"""
from datetime import date
from typing import Dict


class APICounter:
    """Counts outbound provider calls per calendar day"""

    def __init__(self, max_calls_per_day: int):
        self.max_calls_per_day = max_calls_per_day
        self.call_count: Dict[str, int] = {}
        self.current_date = date.today()

    def can_make_call(self) -> bool:
        """Check if the provider can be called today"""
        today = date.today()

        # Reset counter if date changes
        if today != self.current_date:
            self.call_count.clear()
            self.current_date = today

        current_calls = self.call_count.get(today.isoformat(), 0)
        return current_calls < self.max_calls_per_day

    def record_call(self) -> None:
        """Record one provider call"""
        today_key = date.today().isoformat()
        self.call_count[today_key] = self.call_count.get(today_key, 0) + 1

    def get_remaining_calls(self) -> int:
        """Get remaining call count"""
        current_calls = self.call_count.get(date.today().isoformat(), 0)
        return max(0, self.max_calls_per_day - current_calls)
