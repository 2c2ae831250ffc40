"""Timeline, fretboard, and store constants."""

# Frames per bar are fixed; every structural bar edit works in multiples of this.
FRAMES_PER_BAR = 480
MAX_EVENT_LENGTH = 800

DEFAULT_SECONDS_PER_BAR = 2.0
MIN_SECONDS_PER_BAR = 0.1
DEFAULT_TIME_SIGNATURE = 4
TIME_SIGNATURE_MIN = 1
TIME_SIGNATURE_MAX = 64
DEFAULT_TOTAL_FRAMES = FRAMES_PER_BAR * 2

# Fretboard
STRING_COUNT = 6
DEFAULT_MAX_FRET = 22
# High e → low E, MIDI note of each open string
STANDARD_TUNING_MIDI = (64, 59, 55, 50, 45, 40)
STRING_LABELS = ("e", "B", "G", "D", "A", "E")
DEFAULT_CUT_COORD = (2, 0)
OCTAVE = 12

# Snapshot schema
SCHEMA_VERSION = 2

# History / guest store caps
MAX_HISTORY = 64
GUEST_STORE_LIMIT = 200

# Tab text layout
DEFAULT_BARS_PER_ROW = 3
DEFAULT_BAR_WIDTH = 32
MIN_BAR_WIDTH = 8
REST_SYMBOL = "-"
