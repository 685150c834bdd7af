"""Synthetic review generator used when live reviews are unavailable."""

from __future__ import annotations

import logging
import random
from datetime import date
from typing import Literal

from reviewpulse.models import Review
from reviewpulse.window import day_key, days_between

logger = logging.getLogger(__name__)

ReviewKind = Literal["issue", "request", "feedback"]

_MIN_DAILY_COUNT = 20

_RATING_BANDS: dict[ReviewKind, tuple[int, int]] = {
    "issue": (1, 2),
    "request": (2, 3),
    "feedback": (4, 5),
}

_TEMPLATES: dict[str, dict[ReviewKind, list[str]]] = {
    "swiggy": {
        "issue": [
            "Delivery was late by {time} minutes. Very disappointed.",
            "The food arrived cold and stale. Never ordering again.",
            "Delivery guy was extremely rude when I asked about the delay.",
            "App keeps crashing whenever I try to checkout.",
            "Payment failed multiple times, had to use different card.",
            "Received wrong order completely. Asked for biryani got pizza.",
            "Order got cancelled without any reason. Very frustrating.",
            "Still waiting for my refund from last week's cancelled order.",
            "GPS shows wrong location, delivery partner couldn't find me.",
            "Customer support kept me on hold for 30 minutes. No resolution.",
            "Food was spilled inside the bag. Packaging was terrible.",
            "Instamart order came with missing items. No refund.",
            "Maps not working properly, had to guide driver manually.",
            "The delivery person called multiple times even after clear instructions.",
            "Hygiene standards seem very low. Found hair in food.",
        ],
        "request": [
            "Please add more restaurants in my area. Options are limited.",
            "Delivery fees are too high. Should reduce for regular customers.",
            "Need better packaging for liquid items. Always spills.",
            "Would love a dark mode option. Current UI is too bright at night.",
            "Give better discounts like Zomato does.",
            "Instamart should be open all night for late orders.",
            "Bring back the 10 minute bolt delivery feature.",
            "Need more vegetarian restaurant options.",
            "Add feature to schedule orders in advance.",
            "Please add cash on delivery option for all orders.",
        ],
        "feedback": [
            "Amazing service! Got my food in 20 minutes.",
            "Love the app interface. Very easy to use.",
            "Delivery partner was very polite and professional.",
            "Great discounts on first order. Will order again!",
            "Food quality has improved significantly.",
            "Best food delivery app in India. Highly recommended.",
            "Instamart is a lifesaver for grocery shopping.",
            "Customer support resolved my issue quickly.",
            "Packaging was excellent. Food arrived hot.",
            "Reasonable prices compared to other apps.",
        ],
    },
    "zomato": {
        "issue": [
            "Order delayed by {time} minutes. Unacceptable.",
            "Food was completely cold when it arrived.",
            "Delivery boy argued with me about the address.",
            "App freezes on payment screen every time.",
            "Card declined even though it works everywhere else.",
            "Got someone else's order. Very careless.",
            "My order was cancelled but money was deducted.",
            "Refund taking forever. It's been 2 weeks.",
            "Location pin keeps resetting. Very annoying.",
            "Customer care is non-existent. No response.",
            "Biryani leaked all over the bag.",
            "Items missing from Blinkit order regularly.",
            "Restaurant shown as open but order was rejected.",
            "Delivery partner asked for extra cash tip.",
            "Found an insect in the food. Disgusted.",
        ],
        "request": [
            "Need more local restaurant options.",
            "Reduce platform fee. It's too expensive now.",
            "Better packaging for curries please.",
            "Add AMOLED dark theme for battery saving.",
            "Match competitor discounts.",
            "24/7 grocery delivery would be great.",
            "Bring back Zomato Pro benefits.",
            "More healthy food options needed.",
            "Allow order modification after placing.",
            "Add UPI autopay for subscription.",
        ],
        "feedback": [
            "Fastest delivery I've ever experienced!",
            "Clean and intuitive app design.",
            "Delivery partner smiled and wished me well.",
            "Gold membership is worth every rupee.",
            "Food tastes better than dining in!",
            "Zomato is my go-to for everything.",
            "Blinkit saved my party with quick delivery.",
            "Issue resolved in minutes by support.",
            "Food came piping hot. Impressed!",
            "Prices are competitive and fair.",
        ],
    },
    "blinkit": {
        "issue": [
            "Delivery promised in 10 mins, came after {time} mins.",
            "Vegetables were not fresh at all.",
            "Delivery person was impatient and rude.",
            "App crashes when adding items to cart.",
            "Payment gateway issues constantly.",
            "Received expired products twice now.",
            "Order cancelled after waiting for an hour.",
            "Refund for wrong items still pending.",
            "Can't update delivery location in app.",
            "No response from customer support chat.",
            "Milk packets were leaking badly.",
            "Half the items in my order were out of stock.",
            "Store shows open but all items unavailable.",
            "Delivery charged even for delayed orders.",
            "Product quality has deteriorated recently.",
        ],
        "request": [
            "Expand to more neighborhoods please.",
            "Free delivery for orders above 500.",
            "Use better packaging for fragile items.",
            "Night mode for the app would be nice.",
            "Offer loyalty discounts for regulars.",
            "Open earlier in the morning.",
            "Same day delivery for larger orders.",
            "Add organic produce section.",
            "Let us save favorite items easily.",
            "More payment options including wallets.",
        ],
        "feedback": [
            "10 minute delivery is actually real!",
            "Love how simple the app is.",
            "Delivery guy was super friendly.",
            "Great offers every week.",
            "Products are always fresh.",
            "Best grocery app hands down.",
            "Saved my time so many times.",
            "Quick resolution for any issues.",
            "Packaging is secure and clean.",
            "Value for money products.",
        ],
    },
}

_DEFAULT_TEMPLATE_APP = "swiggy"

_AUTHORS: list[str] = [
    "happyuser123", "foodlover_21", "quickbuyer", "dailyorderer", "criticalreviewer",
    "satisfied_customer", "angry_user", "tech_savvy", "budget_shopper", "premium_member",
    "new_user_2024", "loyal_customer", "first_timer", "regular_orderer", "weekend_warrior",
    "midnight_craver", "health_conscious", "busy_professional", "family_shopper", "student_user",
]


def split_counts(count: int) -> dict[ReviewKind, int]:
    """Split a daily review count 50% issues / 30% feedback / rest requests."""
    issues = count // 2
    feedback = count * 3 // 10
    return {"issue": issues, "feedback": feedback, "request": count - issues - feedback}


def _review_text(app: str, kind: ReviewKind, rng: random.Random) -> str:
    templates = _TEMPLATES.get(app, _TEMPLATES[_DEFAULT_TEMPLATE_APP])[kind]
    text = rng.choice(templates)
    return text.replace("{time}", str(rng.randint(15, 74)))


def _rating(kind: ReviewKind, rng: random.Random) -> int:
    low, high = _RATING_BANDS[kind]
    return rng.randint(low, high)


def generate_reviews_for_date(
    app: str,
    day: date,
    count: int = 50,
    rng: random.Random | None = None,
) -> list[Review]:
    """Generate *count* reviews for one day, issues first, then feedback, then requests."""
    rng = rng or random.Random()
    key = day_key(day)
    reviews: list[Review] = []
    counts = split_counts(count)

    for kind in ("issue", "feedback", "request"):
        for i in range(counts[kind]):
            reviews.append(
                Review(
                    id=f"{key}-{kind}-{i}",
                    day=key,
                    rating=_rating(kind, rng),
                    text=_review_text(app, kind, rng),
                    app=app,
                    author=rng.choice(_AUTHORS),
                )
            )
    return reviews


def daily_count(base: int, variance: int, rng: random.Random) -> int:
    """Apply ±*variance* jitter to *base*, never going below the daily floor."""
    if variance <= 0:
        return base
    return max(_MIN_DAILY_COUNT, base + rng.randint(-variance, variance))


def generate_reviews_for_range(
    app: str,
    start: date,
    end: date,
    daily_review_count: int = 50,
    variance: int = 15,
    rng: random.Random | None = None,
) -> list[Review]:
    rng = rng or random.Random()
    reviews: list[Review] = []
    for day in days_between(start, end):
        count = daily_count(daily_review_count, variance, rng)
        reviews.extend(generate_reviews_for_date(app, day, count, rng))
    logger.info("Generated %d synthetic reviews for %s (%s..%s)", len(reviews), app, start, end)
    return reviews
