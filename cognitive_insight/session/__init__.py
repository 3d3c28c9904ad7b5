"""Interactive voice session: state machine, retry policy and controller."""
