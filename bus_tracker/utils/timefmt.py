"""
Human readable durations, following moment.js humanize() thresholds
"""

import math


def _round(value: float) -> int:
    """Halves round up, as Math.round does"""
    return math.floor(value + 0.5)


def humanize_duration(seconds: float) -> str:
    """Turn a duration in seconds into text like 'a few seconds' or '3 hours'"""
    seconds = abs(seconds)
    minutes = seconds / 60
    hours = minutes / 60
    days = hours / 24
    months = days / 30.4375
    years = days / 365.25

    if seconds < 45:
        return 'a few seconds'
    if seconds < 90:
        return 'a minute'
    if minutes < 45:
        return f"{_round(minutes)} minutes"
    if minutes < 90:
        return 'an hour'
    if hours < 22:
        return f"{_round(hours)} hours"
    if hours < 36:
        return 'a day'
    if days < 26:
        return f"{_round(days)} days"
    if days < 45:
        return 'a month'
    if days < 320:
        return f"{_round(months)} months"
    if days < 548:
        return 'a year'
    return f"{_round(years)} years"
