"""
Maelstrom taxonomy layout on Opal.

Partitions of the flat taxonomy table, area vocabulary short codes and the
(scale taxonomy, scale vocabulary) -> area term mapping used to join scale
rows onto area rows.
"""

from __future__ import annotations

UNKNOWN_TAXONOMY = "Unknown_taxonomy"
UNKNOWN_VOCABULARY_SUFFIX = "_Unknown_vocabulary"
UNKNOWN_TERM_SUFFIX = "_Unknown_term"

AREA_TAXONOMY = "Mlstr_area"
ADDITIONAL_TAXONOMY = "Mlstr_additional"
HARMO_TAXONOMY = "Mlstr_harmo"

SCALE_TAXONOMIES: tuple[str, ...] = (
    "Mlstr_habits",
    "Mlstr_genhealth",
    "Mlstr_cogscale",
    "Mlstr_events",
    "Mlstr_social",
)

NO_SCALE = "[NO_SCALE]"
SCALE_SEPARATOR = ", "

# ----------------------------------------------------------------------------
# Area vocabulary -> 3-letter code (unmatched -> null)
# ----------------------------------------------------------------------------

AREA_VOCABULARY_SHORT: dict[str, str] = {
    "Sociodemographic_economic_characteristics": "SDC",
    "Lifestyle_behaviours": "LSB",
    "Reproduction": "REP",
    "Health_status_functional_limitations": "HST",
    "Diseases": "DIS",
    "Symptoms_signs": "SYM",
    "Medication_supplements": "MED",
    "Non_pharmacological_interventions": "NPH",
    "Health_community_care_utilization": "CAR",
    "End_of_life": "EOL",
    "Physical_measures": "PME",
    "Laboratory_measures": "LAB",
    "Cognitive_psychological_measures": "COG",
    "Life_events_plans_beliefs": "LIF",
    "Preschool_school_work": "SCH",
    "Social_environment": "SOC",
    "Physical_environment": "PHY",
    "Administrative_information": "ADM",
    AREA_TAXONOMY + UNKNOWN_VOCABULARY_SUFFIX: "ERR",
}

# ----------------------------------------------------------------------------
# (scale taxonomy, scale vocabulary) -> area term (unmatched -> null)
# ----------------------------------------------------------------------------

SCALE_AREA_TERMS: dict[tuple[str, str], str] = {
    ("Mlstr_habits", "Tobacco"): "Tobacco",
    ("Mlstr_habits", "Alcohol"): "Alcohol",
    ("Mlstr_habits", "Drugs"): "Drugs",
    ("Mlstr_habits", "Nutrition"): "Nutrition",
    ("Mlstr_habits", "Breastfeeding"): "Breastfeeding",
    ("Mlstr_habits", "Physical_activity"): "Phys_act",
    ("Mlstr_habits", "Sleep"): "Sleep",
    ("Mlstr_habits", "Sexual_behaviours"): "Sex_behav",
    ("Mlstr_habits", "Tech_devices"): "Tech_devices",
    ("Mlstr_habits", "Misbehaviour"): "Misbehav_crim",
    ("Mlstr_habits", "Other"): "Other_lifestyle",
    ("Mlstr_genhealth", "Perception"): "Perc_health",
    ("Mlstr_genhealth", "Quality"): "Qual_life",
    ("Mlstr_genhealth", "Development"): "Life_dev",
    ("Mlstr_genhealth", "Functional"): "Act_daily_living",
    ("Mlstr_genhealth", "Other"): "Other",
    ("Mlstr_cogscale", "Cog_scale"): "Cognitive_functioning",
    ("Mlstr_cogscale", "Personality"): "Personality",
    ("Mlstr_cogscale", "Emotional"): "Psychological_emotional_distress",
    ("Mlstr_cogscale", "Other_psycho"): "Other_psycholog_measures",
    ("Mlstr_events", "Life_events"): "Life_events",
    ("Mlstr_events", "Beliefs_values"): "Beliefs_values",
    ("Mlstr_social", "Social_network"): "Soc_network",
    ("Mlstr_social", "Social_participation"): "Soc_participation",
    ("Mlstr_social", "Social_support"): "Soc_support",
    ("Mlstr_social", "Parenting"): "Parenting",
    ("Mlstr_social", "Other"): "Other_soc_characteristics",
    # Unknown scale vocabularies point at the area vocabulary's unknown term
    ("Mlstr_habits", "Mlstr_habits_Unknown_vocabulary"):
        "Lifestyle_behaviours_Unknown_term",
    ("Mlstr_genhealth", "Mlstr_genhealth_Unknown_vocabulary"):
        "Health_status_functional_limitations_Unknown_term",
    ("Mlstr_cogscale", "Mlstr_cogscale_Unknown_vocabulary"):
        "Cognitive_psychological_measures_Unknown_term",
    ("Mlstr_events", "Mlstr_events_Unknown_vocabulary"):
        "Life_events_plans_beliefs_Unknown_term",
    ("Mlstr_social", "Mlstr_social_Unknown_vocabulary"):
        "Social_environment_Unknown_term",
}

# Joins taxonomy/vocabulary into one lookup key for SCALE_AREA_TERMS.
SCALE_KEY_SEPARATOR = "::"


def scale_key(taxonomy: str, vocabulary: str) -> str:
    return f"{taxonomy}{SCALE_KEY_SEPARATOR}{vocabulary}"


def unknown_vocabulary(taxonomy: str) -> str:
    return taxonomy + UNKNOWN_VOCABULARY_SUFFIX


def unknown_term(vocabulary: str) -> str:
    return vocabulary + UNKNOWN_TERM_SUFFIX
