'''
Enums shared by the API models and the schedule engine.
'''
import enum
import datetime


class Weekday(enum.IntEnum):
    """ISO weekday numbering, the same one date.isoweekday() uses."""
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7

    @classmethod
    def of(cls, value: datetime.date) -> "Weekday":
        return cls(value.isoweekday())

    @classmethod
    def get_all_names(cls) -> list[str]:
        return [member.label for member in cls]

    @property
    def label(self) -> str:
        return self.name.capitalize()
