"""
Configuration file for the Ultra Pace Planner
All tunable parameters in one place with clear documentation

Engine units: distance in miles, elevation in meters, pace in min/mile,
time in minutes unless a name says otherwise.
"""

# ========================================
# GEO / TRACK MATCHING
# ========================================

# Earth radius for great-circle distances (miles)
EARTH_RADIUS_MILES = 3959.0

# Nearest-point search stops early once the best match is closer than this
# (meters) and the next candidate is more than twice as far as the best.
# Known limitation: can miss a closer point on self-intersecting tracks.
CLOSEST_POINT_EARLY_EXIT_M = 50.0
CLOSEST_POINT_REGRESSION_RATIO = 2.0

# Default spacing when decimating a dense track (miles)
DEFAULT_SAMPLE_INTERVAL_MILES = 0.1

# ========================================
# ELEVATION
# ========================================

# Minimum accumulated elevation change to count as real gain/loss (meters)
# Filters GPS noise like +1m, -1m, +1m
ELEVATION_HYSTERESIS_M = 1.0

# Climb classification (absolute % grade thresholds)
FLAT_GAIN_M = 15.0  # less than ~50ft of gain is basically flat
CLIMB_THRESHOLDS = [
    (15.0, "Very Steep"),
    (10.0, "Steep"),
    (6.0, "Moderate-Steep"),
    (3.0, "Moderate"),
    (1.0, "Gradual"),
]

# ========================================
# GRADIENT BUCKETS (PACE MODEL)
# ========================================

# Bucket edges (% grade). 8 edges -> 9 buckets:
# <=-15, -15..-6, -6..-1, flat, +1..+3, +3..+6, +6..+10, +10..+15, >=15
GRADIENT_EDGES = [-15.0, -6.0, -1.0, 1.0, 3.0, 6.0, 10.0, 15.0]

# Representative gradient for a bucket that has no samples (% grade)
GRADIENT_BUCKET_CENTERS = [-20.0, -10.5, -3.5, 0.0, 2.0, 4.5, 8.0, 12.5, 20.0]

# Buckets with fewer intervals than this are flagged low-confidence
MIN_BUCKET_SAMPLES = 3

# Paces outside (0, MAX_VALID_PACE) are treated as stopped / GPS error (min/mile)
MAX_VALID_PACE = 30.0

# ========================================
# PACE DERIVATION
# ========================================

# Fallback flat-ground pace when no usable history exists (min/mile)
DEFAULT_FLAT_PACE = 12.0

# Predicted pace may not stray further than this from its anchor bucket pace
MAX_PACE_EXTRAPOLATION = 0.5

# Historical same-mileage blend (only when the activity is the same course)
HISTORICAL_SPLIT_WEIGHT = 0.7
MIN_HISTORICAL_RECORDS = 5

# Confidence rules
HIGH_CONFIDENCE_SAMPLES = 10
HIGH_CONFIDENCE_GRADIENT_DIFF = 2.0  # percentage points
MEDIUM_CONFIDENCE_SAMPLES = 3

# Fatigue factor estimation from a historical activity
FATIGUE_CHUNK_MILES = 10.0
MIN_FATIGUE_RECORDS = 50
DEFAULT_FATIGUE_FACTOR = 2.0  # % per 10 miles
MAX_FATIGUE_FACTOR = 8.0

# ========================================
# HEART RATE & POWER ZONES
# ========================================

MIN_HR_SAMPLES = 50
MIN_POWER_SAMPLES = 100

# Karvonen fractions of HR reserve for zone boundaries (zone 1 .. zone 5)
HR_ZONE_FRACTIONS = [0.0, 0.6, 0.7, 0.8, 0.9, 1.0]

# FTP estimate from race power (ultra efforts sit around 69% of FTP)
FTP_FROM_AVG_POWER = 1.45

# Power zones as fractions of FTP: (name, low, high)
POWER_ZONE_FRACTIONS = [
    ("Easy", 0.0, 0.55),
    ("Moderate", 0.56, 0.75),
    ("Tempo", 0.76, 0.90),
    ("Threshold", 0.91, 1.05),
    ("VO2max", 1.06, 1.20),
]

# Fatigue drift on zone targets
HR_FATIGUE_BOOST_MILES = 20.0  # +1 bpm every 20 miles
MAX_HR_FATIGUE_BOOST = 5
POWER_FATIGUE_MILES = 200.0  # reduction = distance / 200
MAX_POWER_FATIGUE_REDUCTION = 0.15

# ========================================
# PACE STRATEGIES
# ========================================

AGGRESSIVE_MULTIPLIER = 0.93
BALANCED_MULTIPLIER = 1.0
CONSERVATIVE_MULTIPLIER = 1.08

# HR responds to speed changes at half strength; power roughly proportional
HR_PACE_SENSITIVITY = 0.5
POWER_PACE_SENSITIVITY = 1.0
MIN_HR_BPM = 50
MAX_HR_BPM = 220

# ========================================
# FATIGUE CURVE
# ========================================

# Trapezoidal integration steps for total time with fatigue
FATIGUE_INTEGRATION_STEPS = 100

# Fatigue factor is expressed per this many distance units
FATIGUE_DISTANCE_UNIT = 10.0

# Difference (percentage points) within which actual fade "matches" expected
FATIGUE_MATCH_TOLERANCE = 1.0

# ========================================
# ENERGY BALANCE
# ========================================

KCAL_PER_GRAM_CARB = 4.0

# Reference runner for metabolic cost scaling (kg)
REFERENCE_WEIGHT_KG = 70.0

# Base running cost on flat ground for the reference runner (kcal/km)
BASE_KCAL_PER_KM = 60.0

# Climb cost: ~10 kcal per 100ft of gain for the reference runner (kcal/m)
KCAL_PER_M_GAIN = 10.0 / 30.48

# Eccentric descent cost as a fraction of climbing cost
DESCENT_COST_FACTOR = 0.4

# Intensity multipliers by speed (km/h)
FAST_SPEED_KMH = 12.0
MODERATE_SPEED_KMH = 10.0
HIKING_SPEED_KMH = 6.0
FAST_INTENSITY = 1.10
MODERATE_INTENSITY = 1.05
HIKING_INTENSITY = 0.95

# Pace assumed when a segment has no distance (min/mile)
DEFAULT_ENERGY_PACE = 15.0

# Glycogen storage by training status (g per kg body weight)
# ~500g for a trained 70kg athlete
GLYCOGEN_G_PER_KG = {
    "recreational": 6.0,
    "trained": 7.0,
    "elite": 8.0,
}

# Fat oxidation share of energy, rising with distance and duration
BASELINE_FAT_RATE = 0.30
FAT_RATE_DISTANCE_GAIN = 0.40  # reached at FAT_RATE_DISTANCE_MILES
FAT_RATE_DISTANCE_MILES = 100.0
FAT_RATE_TIME_GAIN = 0.10  # reached at FAT_RATE_TIME_HOURS
FAT_RATE_TIME_HOURS = 12.0
MAX_FAT_RATE = 0.70

# Gut absorption ceiling: carbs beyond this rate are not absorbed (kcal/hour)
CARB_ABSORPTION_CEILING_KCAL_PER_HOUR = 280.0

# Fraction of absorbed carbohydrate that offsets glycogen use
CARB_STORAGE_EFFICIENCY = 0.8

# Bonk risk from remaining glycogen (% of capacity)
BONK_NONE_PCT = 50.0
BONK_LOW_PCT = 30.0
BONK_MODERATE_PCT = 15.0
BONK_CRITICAL_PCT = 5.0  # effectively empty

# Bonk risk from a single segment's deficit (kcal)
NO_INTAKE_HIGH_BURN_KCAL = 400.0
NO_INTAKE_MODERATE_BURN_KCAL = 200.0
DEFICIT_HIGH_KCAL = -500.0
DEFICIT_MODERATE_KCAL = -400.0
DEFICIT_LOW_KCAL = -300.0

# Escalate one level when this many consecutive deficits keep worsening
BONK_TREND_WINDOW = 3

# Warn when one segment drains more than this share of glycogen capacity
HIGH_SEGMENT_DEPLETION_PCT = 15.0

# ========================================
# ECCENTRIC (DOWNHILL) LOAD
# ========================================

# Descent categories by average gradient (% grade, lower bound of each)
DESCENT_EASY_GRADIENT = -6.0
DESCENT_MODERATE_GRADIENT = -10.0
DESCENT_TECHNICAL_GRADIENT = -15.0
DESCENT_EXTREME_GRADIENT = -20.0

# Suggested pace multiplier per descent category
DESCENT_PACE_MULTIPLIERS = {
    "easy": 0.95,
    "moderate": 1.0,
    "technical": 1.1,
    "extreme": 1.25,
}

# Gradient score slopes (points per % grade) within each band, steeper bands cost more
ECCENTRIC_GRADIENT_BANDS = [(6.0, 2.0), (10.0, 4.0), (15.0, 8.0), (float("inf"), 12.0)]

# Score multipliers are capped at this distance (miles) and loss (feet)
ECCENTRIC_DISTANCE_CAP_MILES = 5.0
ECCENTRIC_DISTANCE_DIVISOR = 2.0
ECCENTRIC_LOSS_CAP_FT = 3000.0
ECCENTRIC_LOSS_DIVISOR_FT = 1000.0
MAX_SEGMENT_ECCENTRIC_SCORE = 100.0

# Segment warnings
ECCENTRIC_LOSS_WARNING_FT = 1500.0
ECCENTRIC_SCORE_WARNING = 50.0

# Race load level by summed segment score: (upper bound, level)
ECCENTRIC_LOAD_LEVELS = [(100.0, "low"), (250.0, "moderate"), (500.0, "high")]

# Race-wide descent above this triggers a cumulative stress note (feet)
ECCENTRIC_TOTAL_LOSS_WARNING_FT = 5000.0

# ========================================
# SPLIT ANALYSIS
# ========================================

# Default planned pace when a segment has none (min/mile)
DEFAULT_PLANNED_PACE = 10.0

MIN_SPLIT_DISTANCE = 0.01  # miles
ASSUMED_MAX_HR = 190.0
SPLIT_FATIGUE_PER_SEGMENT = 0.02

# Insight thresholds
FADE_RATE_INSIGHT = 3.0  # % per 10 miles
POSITIVE_SPLIT_MIN_SPLITS = 4
LARGE_PACE_VARIANCE_PCT = 20.0
LARGE_VARIANCE_SHARE = 0.3

# Pacing consistency by std dev of split paces (min/mile)
CONSISTENCY_LEVELS = [(0.5, "Excellent"), (1.0, "Good"), (1.5, "Fair")]

# ========================================
# CHECKPOINT TIMES
# ========================================

QUICK_STOP_MINUTES = 2.0
CREW_STOP_MINUTES = 7.0
NUTRITION_STOP_EXTRA_MINUTES = 2.0
LONG_SEGMENT_MILES = 15.0
LONG_SEGMENT_EXTRA_MINUTES = 3.0
MAX_CHECKPOINT_MINUTES = 15.0

# Spacing of generated checkpoints in a starter race plan (miles)
DEFAULT_CHECKPOINT_INTERVAL_MILES = 10.0

# ========================================
# UNIT CONVERSIONS
# ========================================
METERS_PER_MILE = 1609.344
KM_PER_MILE = 1.609344
FEET_PER_METER = 3.28084
SEMICIRCLES_TO_DEGREES = 180.0 / 2 ** 31
MINUTES_PER_HOUR = 60
SECONDS_PER_MINUTE = 60

# Small number to prevent division by zero
EPSILON = 1e-9
