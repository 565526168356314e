MIN_PITCH_CHARS = 50
MAX_ERROR_CHARS = 1200
PITCH_DRAFT_PROMPT_CHARS = 1000
CAN_PROCEED_THRESHOLD = 70
MUST_MEET_SCORE_CAP = 40
DEFAULT_COMPLETION_SCORE = 50
KEYWORD_COMPLETION_SCORE = 85
MEETINGS_PER_YEAR = 12
AVG_DEAL_SIZE_EUR = 250_000
OPTIMAL_SUCCESS_RATE = 0.65
