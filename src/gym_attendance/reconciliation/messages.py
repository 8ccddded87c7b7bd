"""Member-facing texts for the scheduled notices."""

from __future__ import annotations

MORNING_MESSAGES = (
    ("Rise & Shine!", "A new day, a new opportunity to be better than yesterday. Hit the gym today!"),
    ("Good Morning, Champion!", "Your muscles are waiting for you. Let's make some gains today!"),
    ("Morning Power!", "The early bird gets the gains! Start your day strong at the gym."),
    ("Fuel Your Day!", "Great things never came from comfort zones. Time to train!"),
    ("Champions Train Today!", "Today's workout is tomorrow's strength. Don't skip!"),
)

EVENING_MESSAGES = (
    ("Evening Warrior!", "End your day strong! An evening workout is the perfect stress relief."),
    ("Post-Work Pump!", "Shake off the day's stress with a powerful gym session tonight!"),
    ("Evening Session Time!", "The gym is calling! Perfect time for an evening workout."),
    ("Night Grind!", "While others rest, warriors train. Time to hit the gym!"),
)


def weekly_progress_message(visits: int) -> tuple[str, str]:
    if visits >= 6:
        return (
            "Outstanding Week!",
            f"Incredible! You visited the gym {visits} times this week! Keep up this amazing streak!",
        )
    if visits >= 4:
        return (
            "Great Week!",
            f"Solid performance! {visits} gym sessions this week. Push for even more next week!",
        )
    if visits >= 2:
        return (
            "Weekly Check-in",
            f"You made it {visits} times this week. Good start! Try to add one more session next week.",
        )
    if visits >= 1:
        return (
            "Weekly Reminder",
            f"Only {visits} visit(s) this week. We miss you! Aim for at least 3 sessions next week.",
        )
    return (
        "We Missed You This Week",
        "Zero gym visits this week! Every new week is a fresh start. Let's make next week count!",
    )
