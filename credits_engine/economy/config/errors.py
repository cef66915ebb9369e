class EconomyConfigError(Exception):
    pass


class UnknownActionTypeError(EconomyConfigError):
    pass
