"""Constants shared by the catalog fixture and the tests that check it."""

PHOTO_BYTES = b"0123456789"

# Capture times, seconds since the epoch
T_SUNSET = 1_500_000_000
T_UNTITLED = 1_500_000_100
T_BEACH = 1_500_000_200
