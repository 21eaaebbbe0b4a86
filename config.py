# Save as: chat_companion/config.py
from enum import Enum


class RoleType(Enum):
    GREETING = "greeting"
    DEPARTURE = "departure"
    REACTION = "reaction"
    AGREEMENT = "agreement"
    QUESTION = "question"
    INSIDER = "insider"
    SUPPORT = "support"
    PLAYFUL = "playful"


# Catalog order doubles as the tie-break order for role selection
ROLE_ORDER = [
    RoleType.GREETING,
    RoleType.DEPARTURE,
    RoleType.REACTION,
    RoleType.AGREEMENT,
    RoleType.QUESTION,
    RoleType.INSIDER,
    RoleType.SUPPORT,
    RoleType.PLAYFUL,
]


class FeedbackKind(Enum):
    PICKUP = "pickup"
    CLICK = "click"
    THUMBS_UP = "thumbs_up"
    THUMBS_DOWN = "thumbs_down"


class TriggerKind(Enum):
    KEYWORD = "keyword"
    TOPIC = "topic"
    VOLUME = "volume"
    SILENCE = "silence"
    ENGAGEMENT = "engagement"
    HOUR = "hour"


class CommentOrigin(Enum):
    RULE = "rule"
    LLM = "llm"
    FILLER = "filler"
    STARTER = "starter"


# --- Frequency Control ---
BASE_FREQUENCY = 8.0            # comments per minute
VOLUME_MULTIPLIER = 0.5
SPEECH_RATE_MULTIPLIER = 0.3
VARIANCE_BONUS = 0.2
VARIANCE_NORMALIZER = 0.2
SILENCE_REDUCTION = 0.3
SILENCE_THRESHOLD_MS = 1000.0
SILENCE_RAMP_MS = 5000.0
MIN_FREQUENCY = 2.0
MAX_FREQUENCY = 20.0
ADAPTATION_SMOOTHNESS = 0.7
BASELINE_ACTIVITY = 0.4
MAX_STEP_FRACTION = 0.25
TIMING_JITTER = 0.0
FREQUENCY_HISTORY_SIZE = 60

# --- Rule-Based Generation ---
RECENT_UTTERANCE_WINDOW = 5
RULE_HISTORY_LIMIT = 50
RULE_MIN_INTERVAL_SECONDS = 0.0
FILLER_CONTENT = "..."
FILLER_ROLE = RoleType.REACTION

# --- Hybrid Generation ---
RULE_BASED_RATIO = 0.7
ENABLE_ADAPTIVE_RATIO = True
PERFORMANCE_THRESHOLD_MS = 2000.0
FALLBACK_TO_RULE_BASED = True
MAX_LLM_RETRIES = 2
LLM_ATTEMPT_TIMEOUT_SECONDS = 5.0
RATIO_INCREASE_STEP = 0.1
RATIO_DECREASE_STEP = 0.05
RATIO_CEILING = 0.9
RATIO_FLOOR = 0.5
METRICS_ALPHA = 0.1
INITIAL_SUCCESS_RATE = 1.0
INITIAL_AVG_LATENCY_MS = 1000.0
LLM_QUESTION_SILENCE_SECONDS = 5.0
LLM_MAX_COMMENT_LENGTH = 100

# --- Interaction Tracking ---
PICKUP_DETECTION_WINDOW = 5.0   # seconds
CONTENT_SIMILARITY_THRESHOLD = 0.3
TIMING_WEIGHT = 0.6
CONTENT_WEIGHT = 0.4
MAX_INTERACTION_EVENTS = 500
MAX_TRACKED_COMMENTS = 200

# --- Preference Learning ---
LEARNING_RATE = 0.1
DECAY_RATE = 0.01
MIN_WEIGHT = 0.1
MAX_WEIGHT = 2.0
DEFAULT_ROLE_WEIGHT = 1.0
FEEDBACK_MULTIPLIERS = {
    FeedbackKind.THUMBS_UP: 1.5,
    FeedbackKind.THUMBS_DOWN: -1.0,
    FeedbackKind.CLICK: 0.3,
    FeedbackKind.PICKUP: 0.8,
}

# --- Conversation Starters ---
FOLLOW_UP_SILENCE_SECONDS = 15.0
STARTER_MEMORY_SIZE = 5

# --- Orchestrator ---
COMMENT_INDEX_LIMIT = 200

# --- Storage ---
PROFILES_DIR = "profiles"
PREFERENCE_SERVICE_URL = "http://localhost:8008"
STORAGE_TIMEOUT_SECONDS = 2.0

# --- LLM ---
OLLAMA_MODEL = 'llama3.2:latest'
OLLAMA_HOST = 'http://localhost:11434'

# --- Server ---
COMPANION_HOST = "0.0.0.0"
COMPANION_PORT = 8002
DEFAULT_USER_ID = "local"
