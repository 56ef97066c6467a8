"""StudyBet backend: timed study sessions wagered against a pledge."""
