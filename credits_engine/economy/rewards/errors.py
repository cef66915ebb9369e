class RewardError(Exception):
    pass


class RewardAlreadyClaimedError(RewardError):
    pass


class RewardRuleUnavailableError(RewardError):
    pass


class InvalidRewardAmountError(RewardError):
    pass
