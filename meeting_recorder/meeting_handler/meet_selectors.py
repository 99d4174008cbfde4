"""
Google Meet DOM selectors and text markers for meeting automation.

This module centralizes the Meet UI knowledge used by the default UI Locator
rule set for:
- Deciding whether a meeting is live
- Join flow
- Recording activation
- Supervision (liveness and participant count)

Note: Meet's UI is frequently updated by Google, so selectors may need
periodic maintenance. Nothing else in the engine depends on them.
"""

# =============================================================================
# DOM SELECTORS
# =============================================================================

MEET_SELECTORS = {
    # -------------------------------------------------------------------------
    # Pre-join Selectors
    # -------------------------------------------------------------------------

    # Device check prompt shown before the green room
    "continue_without_devices": [
        'button:has-text("Continue without microphone and camera")',
        'button:has-text("Continue without microphone")',
    ],

    # Guest name input on the pre-join screen
    "name_input": [
        'input[placeholder="Your name"]',
        'input[placeholder="Enter your name"]',
        'input[aria-label="Your name"]',
        'input[aria-label="Enter your name"]',
    ],

    # Camera is ON (need to turn off)
    "camera_on_indicator": [
        'button[aria-label*="Turn off camera"]',
        'button[aria-label*="camera is on"]',
        'button[data-is-muted="false"][aria-label*="camera"]',
        '[data-tooltip*="Turn off camera"]',
    ],

    # Mic is ON (need to mute)
    "mic_on_indicator": [
        'button[aria-label*="Turn off microphone"]',
        'button[aria-label*="microphone is on"]',
        'button[data-is-muted="false"][aria-label*="microphone"]',
        '[data-tooltip*="Turn off microphone"]',
    ],

    # -------------------------------------------------------------------------
    # Join Flow Selectors
    # -------------------------------------------------------------------------

    # Primary join affordance
    "join_now": [
        'button:has-text("Join now")',
        '[role="button"]:has-text("Join now")',
    ],

    # Alternate join affordances (guest / knock)
    "ask_to_join": [
        'button:has-text("Ask to join")',
        'button:has-text("Join")',
        '[role="button"]:has-text("Ask to join")',
    ],

    # Waiting for the host to admit us
    "lobby": [
        'text="Asking to be admitted"',
        'text="Asking to join..."',
        "text=You'll join the call when someone lets you in",
    ],

    # Only rendered inside the call; the pre-join screen has its own mic/camera toggles
    "in_meeting": [
        'button[aria-label*="Leave call"]',
        '[data-tooltip*="Leave call"]',
        '[data-participant-id]',
    ],

    # Meeting is over or we were removed
    "meeting_ended": [
        'text="You left the meeting"',
        'text="The call has ended"',
        "text=You've been removed from the meeting",
        'text="Return to home screen"',
        'button:has-text("Rejoin")',
    ],

    # -------------------------------------------------------------------------
    # Recording Selectors
    # -------------------------------------------------------------------------

    # Anything recording related; absent when the account can't record
    "recording_capability": [
        'button[aria-label*="Record" i]',
        '[data-tooltip*="Record" i]',
        'button[aria-label*="Activities" i]',
        '[data-tooltip*="Activities" i]',
    ],

    # "More options" menu button (three dots)
    "more_options": [
        'button[aria-label="More options"]',
        'button[aria-label*="More options" i]',
        'button[aria-label*="More actions" i]',
        '[data-tooltip*="More options" i]',
    ],

    # Record item inside the menu / activities panel
    "record_item": [
        '[role="menuitem"]:has-text("Record meeting")',
        '[role="menuitem"]:has-text("Manage recording")',
        '[role="menuitem"]:has-text("Recording")',
        'li:has-text("Record meeting")',
        'button:has-text("Start recording")',
        '[aria-label*="Record meeting" i]',
    ],

    # Consent / confirmation dialog
    "recording_confirm": [
        '[role="dialog"] button:has-text("Start")',
        '[role="dialog"] button:has-text("Start recording")',
        '[role="alertdialog"] button:has-text("Start")',
        'button:has-text("Accept")',
    ],

    # -------------------------------------------------------------------------
    # Participant Selectors
    # -------------------------------------------------------------------------

    # People button whose label carries the count, e.g. "Show everyone (3)"
    "people_button": [
        'button[aria-label*="Show everyone" i]',
        'button[aria-label*="People" i]',
        '[data-tooltip*="Show everyone" i]',
    ],

    # One element per participant tile
    "participant_tile": [
        '[data-participant-id]',
        '[data-requested-participant-id]',
    ],
}


# =============================================================================
# TEXT MARKERS
# =============================================================================

# Body text that means "not started yet" (meeting page reachable, not live)
WAITING_TEXT_MARKERS = [
    "hasn't started",
    "has not started",
    "not started yet",
    "waiting for the host",
    "scheduled for",
    "check your meeting code",
    "you can't join this video call",
]


def get_selectors_for(element_type: str) -> list:
    """
    Get list of selectors for a specific element type.

    Args:
        element_type: Key from MEET_SELECTORS dict

    Returns:
        List of CSS/text selectors to try
    """
    return MEET_SELECTORS.get(element_type, [])
