"""Pure domain logic: sessions, resources, bets, study days.

No I/O and no wall-clock reads; every time-dependent operation takes ``now``.
"""
