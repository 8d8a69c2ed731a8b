"""Shared payload builders for the API tests."""


def make_blocks(week_counts, benchmark_template_id=None, days_per_week=1):
    """Program blocks with the given number of weeks per block; each day holds a squat and a row."""
    blocks = []
    for b, weeks in enumerate(week_counts):
        blocks.append(
            {
                "name": f"Block {b + 1}",
                "weeks": [
                    {
                        "name": f"Week {w + 1}",
                        "days": [
                            {
                                "name": f"Day {d + 1}",
                                "primary_lift_activities": [
                                    {
                                        "id": "squat",
                                        "name": "Back Squat",
                                        "activity_type": "PRIMARY_LIFT",
                                        "percent_of_max": 80,
                                        "sets": 2,
                                        "repetitions": 5,
                                        "benchmark_template_id": (
                                            str(benchmark_template_id) if benchmark_template_id else None
                                        ),
                                    }
                                ],
                                "accessory_lift_activities": [
                                    {
                                        "id": "row",
                                        "name": "Barbell Row",
                                        "activity_type": "ACCESSORY_LIFT",
                                        "sets": 1,
                                        "repetitions": 10,
                                    }
                                ],
                            }
                            for d in range(days_per_week)
                        ],
                    }
                    for w in range(weeks)
                ],
            }
        )
    return blocks


