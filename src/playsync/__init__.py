"""playsync - audio player state synchronization.

Provides a control surface over a single playable audio resource:
- Loading, playing, pausing, stopping, seeking and fading
- Volume, mute, rate and loop control
- An immutable state snapshot kept in sync with engine events
"""

__version__ = "0.2.0"
