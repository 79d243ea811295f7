"""
Constants for Indian geography and the insight rule thresholds.
"""

# List of Indian states and union territories
INDIAN_STATES = [
    "Andhra Pradesh",
    "Arunachal Pradesh",
    "Assam",
    "Bihar",
    "Chhattisgarh",
    "Goa",
    "Gujarat",
    "Haryana",
    "Himachal Pradesh",
    "Jharkhand",
    "Karnataka",
    "Kerala",
    "Madhya Pradesh",
    "Maharashtra",
    "Manipur",
    "Meghalaya",
    "Mizoram",
    "Nagaland",
    "Odisha",
    "Punjab",
    "Rajasthan",
    "Sikkim",
    "Tamil Nadu",
    "Telangana",
    "Tripura",
    "Uttar Pradesh",
    "Uttarakhand",
    "West Bengal",
    # Union Territories
    "Andaman and Nicobar Islands",
    "Chandigarh",
    "Dadra and Nagar Haveli and Daman and Diu",
    "Delhi",
    "Jammu and Kashmir",
    "Ladakh",
    "Lakshadweep",
    "Puducherry",
]

# Short forms accepted in chat queries
STATE_ALIASES = {
    "up": "Uttar Pradesh",
    "mp": "Madhya Pradesh",
    "ap": "Andhra Pradesh",
    "tn": "Tamil Nadu",
    "wb": "West Bengal",
    "mh": "Maharashtra",
}

# CSV column names
AGE_COLUMNS = ["age_0_5", "age_5_17", "age_18_greater"]
RECORD_COLUMNS = ["date", "state", "district", "pincode"] + AGE_COLUMNS

AGE_GROUP_LABELS = {
    "age_0_5": "0-5 years",
    "age_5_17": "5-17 years",
    "age_18_greater": "18+ years",
}

# Accepted time periods for trend queries
VALID_TIME_PERIODS = ["7d", "30d", "90d", "180d", "365d"]

# Region key used for state/district composites
REGION_SEPARATOR = "|"
NATIONAL_REGION = "national"

# Statistics
TREND_TOLERANCE = 0.05  # relative change needed to leave "stable"
TREND_MIN_POINTS = 2
GEOGRAPHIC_BREAKDOWN_LIMIT = 20
SEASONAL_AMPLITUDE_RATIO = 0.15  # spread of offset averages vs overall mean
CONFIDENCE_SATURATION_SAMPLES = 1000
DEFAULT_MODEL_ACCURACY = 0.85

# Anomaly scans
DEFAULT_ANOMALY_THRESHOLD = 2.5
INSIGHT_ANOMALY_THRESHOLD = 2.0  # dashboard, chat and weekly report scans
HIGH_SEVERITY_Z = 3.0
REGIONAL_TOP_K = 30
REGIONAL_MIN_POINTS = 5
MIN_RECORDS_FOR_SCAN = 10
MAX_FINDINGS_RETURNED = 20
INSIGHT_WINDOW_DAYS = 30

# Coverage gaps: (ratio of average per state, severity), lowest ratio first
COVERAGE_GAP_TIERS = ((0.1, "critical"), (0.3, "medium"))
COVERAGE_GAP_CONFIDENCE = 0.88

# Age distribution
ADULT_SHARE_HIGH = 0.85
ADULT_SHARE_LOW = 0.3
AGE_PATTERN_CONFIDENCE = 0.75

# Forecasting
FORECAST_MIN_POINTS = 7
FORECAST_WINDOW = 7
FORECAST_ALPHA = 0.3
FORECAST_MAX_HORIZON = 90
FORECAST_HISTORY_DAYS = 90
FORECAST_GROWTH_PERIOD_DAYS = 30
FORECAST_BAND_Z = 1.96
FORECAST_BAND_STD_FRACTION = 0.5
WEEKLY_PERIOD = 7
STRONG_GROWTH = 0.1
MODERATE_GROWTH = 0.05

# Suggestions
LOW_COVERAGE_RATIO = 0.5
URGENT_COVERAGE_RATIO = 0.2
HIGH_VOLUME_RATIO = 1.5
CAMP_CONVERSION_RATE = 0.4
STAFF_BOOST_RATE = 0.15
TIMING_ADULT_SHARE = 0.6
TIMING_MIN_VOLUME_RATIO = 0.8
TIMING_BOOST_RATE = 0.1
MAX_SUGGESTIONS_RETURNED = 10

# Crisis zones
CRISIS_COVERAGE_SEVERE = 0.3
CRISIS_COVERAGE_LOW = 0.5
CRISIS_GROWTH_THRESHOLD = 0.1
CRISIS_CHILD_SHARE_MIN = 0.2
CRISIS_SURGE_MONTHS = (1, 2, 6, 7)
CRISIS_REPORT_THRESHOLD = 40
CRISIS_CRITICAL_RISK = 80
CRISIS_HIGH_RISK = 60
CRISIS_DEMAND_BUFFER = 0.3
CRISIS_RISK_CAP = 100
MAX_ZONES_RETURNED = 10
DAYS_PER_MONTH = 30
CRISIS_RISK_WEIGHTS = {
    "coverage_severe": 40,
    "coverage_low": 25,
    "capacity": 35,
    "demographic": 15,
    "seasonal": 20,
}

# Alert rules
ALERT_SIGMA = 2.0
ALERT_ANOMALY_SCORE = 2.5
ALERT_GROWTH_PERCENT = 50.0
ALERT_WINDOW_DAYS = 30

# Weekly report
LOW_INFANT_SHARE_OF_ADULTS = 0.3
REPORT_WINDOW_DAYS = 7
REPORT_TOP_STATES = 10
REPORT_MANY_ANOMALIES = 5

# Severity levels for anomalies, most severe first
SEVERITY_LEVELS = ["critical", "high", "medium", "low"]
SEVERITY_ORDER = {level: rank for rank, level in enumerate(SEVERITY_LEVELS)}
