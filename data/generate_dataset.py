import os

import numpy as np
import pandas as pd

CATEGORIES = [
    "water_supply", "waste_management", "electricity", "roads",
    "sanitation", "street_lighting", "public_safety", "drainage",
]
IMPACTS = ["low", "medium", "high", "critical"]

TEMPLATES = {
    "water_supply": {
        "critical": [
            "Burst water main flooding {location}",
            "Contaminated water supply affecting {count} homes",
            "Severe water contamination reported in {location}",
        ],
        "high": [
            "Large water leak near {location}",
            "Water pipe broken causing {issue}",
            "No water supply to {count} households",
        ],
        "medium": [
            "Low water pressure in {location}",
            "Intermittent water supply in the {area}",
            "Minor water leak at {location}",
        ],
        "low": [
            "Dripping public tap at {location}",
            "Water meter reading issue in the {area}",
        ],
    },
    "waste_management": {
        "critical": [
            "Toxic waste dumped near {location}",
            "Hazardous material spill in the {area}",
        ],
        "high": [
            "Overflowing bins causing health hazard at {location}",
            "Garbage not collected for {count} days in the {area}",
        ],
        "medium": [
            "Missed waste collection at {location}",
            "Scattered litter across the {area}",
        ],
        "low": [
            "Single overflowing dustbin at {location}",
            "Bin placement request near {location}",
        ],
    },
    "electricity": {
        "critical": [
            "Transformer explosion at {location}",
            "Sparking electrical wires near {location}",
            "Exposed high voltage cables in the {area}",
        ],
        "high": [
            "Frequent power cuts at {location}",
            "Electrical pole leaning dangerously in the {area}",
        ],
        "medium": [
            "Voltage fluctuation in the {area}",
            "Power cut during peak hours at {location}",
        ],
        "low": [
            "Electricity meter display faded at {location}",
            "Minor electrical concern in the {area}",
        ],
    },
    "roads": {
        "critical": [
            "Road collapse at {location}",
            "Dangerous crater on main road causing accident at {location}",
        ],
        "high": [
            "Large pothole causing two wheeler accidents at {location}",
            "Fallen tree blocking {location}",
        ],
        "medium": [
            "Multiple potholes along {location}",
            "Uneven road surface in the {area}",
        ],
        "low": [
            "Small pothole near {location}",
            "Faded road markings at {location}",
        ],
    },
    "sanitation": {
        "critical": [
            "Sewage overflow flooding homes at {location}",
            "Open sewage causing health emergency in the {area}",
        ],
        "high": [
            "Public toilet broken and overflowing at {location}",
            "Sewage smell spreading across the {area}",
        ],
        "medium": [
            "Public toilet needs cleaning at {location}",
            "Mosquito breeding in stagnant water at {location}",
        ],
        "low": [
            "Cleaning schedule request for {location}",
            "Minor hygiene complaint in the {area}",
        ],
    },
    "street_lighting": {
        "critical": [
            "Entire street dark with exposed wires at {location}",
        ],
        "high": [
            "Multiple street lights not working on {location}",
            "Dark stretch near school in the {area}",
        ],
        "medium": [
            "Street light flickering at {location}",
        ],
        "low": [
            "Single street light dim at {location}",
            "Light timing adjustment needed in the {area}",
        ],
    },
    "public_safety": {
        "critical": [
            "Gas leak reported near {location}",
            "Building fire spreading at {location}",
        ],
        "high": [
            "Open manhole posing injury risk at {location}",
            "Unsafe scaffolding over footpath in the {area}",
        ],
        "medium": [
            "Broken railing on footbridge at {location}",
        ],
        "low": [
            "Missing signboard at {location}",
            "Request for speed sign in the {area}",
        ],
    },
    "drainage": {
        "critical": [
            "Storm drain overflow flooding {count} houses",
            "Drain collapse causing waterlogging at {location}",
        ],
        "high": [
            "Blocked drain causing {issue} at {location}",
            "Drain cover missing in the {area}",
        ],
        "medium": [
            "Slow drainage after rain at {location}",
        ],
        "low": [
            "Leaves clogging drain grate at {location}",
            "Drain desilting request for the {area}",
        ],
    },
}

LOCATIONS = [
    "MG Road", "Church Street", "Koramangala 5th Block", "Jayanagar 4th Block",
    "Indiranagar 100 Feet Road", "HSR Layout Sector 1", "Whitefield Main Road",
    "Silk Board Junction", "Majestic Bus Stand", "Hosur Road", "KR Market",
]
AREAS = ["ward", "locality", "sector", "colony", "layout", "extension"]
ISSUES = ["waterlogging", "road damage", "property damage", "traffic jam", "safety hazard"]
COUNTS = [5, 10, 20, 50, 100, 200]
TIME_DESCRIPTORS = ["since yesterday", "for 3 days", "since last night", "after recent rains", "during peak hours"]

BASE_SCORES = {"critical": 0.90, "high": 0.70, "medium": 0.45, "low": 0.25}
CRITICAL_CATEGORIES = {"electricity", "water_supply", "public_safety", "sanitation", "drainage"}
HIGH_PRIORITY_CATEGORIES = {"roads", "street_lighting"}


def _fill(template: str, rng: np.random.RandomState) -> str:
    text = template.format(
        location=rng.choice(LOCATIONS),
        area=rng.choice(AREAS),
        issue=rng.choice(ISSUES),
        count=rng.choice(COUNTS),
    )
    if rng.random_sample() > 0.7:
        text = f"{text} {rng.choice(TIME_DESCRIPTORS)}"
    return text


def _priority(category: str, impact: str, rng: np.random.RandomState) -> float:
    score = BASE_SCORES[impact]
    if category in CRITICAL_CATEGORIES and impact != "low":
        score += 0.05
    elif category in HIGH_PRIORITY_CATEGORIES and impact in ("high", "critical"):
        score += 0.03
    score += rng.random_sample() * 0.10 - 0.05
    return round(min(0.99, max(0.15, score)), 2)


def generate_sample_dataset(n_samples: int = 1500, seed: int = 42) -> pd.DataFrame:
    """Generate synthetic municipal complaints with a priority label in [0, 1]"""
    rng = np.random.RandomState(seed)
    rows = []
    for _ in range(n_samples):
        category = rng.choice(CATEGORIES)
        impact = rng.choice(IMPACTS)
        rows.append({
            "category": category,
            "impact": impact,
            "description": _fill(rng.choice(TEMPLATES[category][impact]), rng),
            "priority": _priority(category, impact, rng),
        })
    return pd.DataFrame(rows, columns=["category", "impact", "description", "priority"])


def save_sample_dataset(output_path: str, n_samples: int = 1500, seed: int = 42) -> None:
    """Generate and save a sample dataset"""
    df = generate_sample_dataset(n_samples, seed=seed)
    df.to_csv(output_path, index=False)
    print(f"Sample dataset with {len(df)} complaints saved to {output_path}")
    print(f"Category distribution:\n{df['category'].value_counts()}")
    print(f"Impact distribution:\n{df['impact'].value_counts()}")


if __name__ == "__main__":
    save_sample_dataset(os.path.join(os.path.dirname(os.path.abspath(__file__)), "test_data.csv"), 1500)
