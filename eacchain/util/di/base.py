from dishka import Provider as DishkaProvider

from eacchain.util.di.scope import Scope


class Provider(DishkaProvider):
    """Base for all eacchain DI providers; factories default to the APP scope."""

    scope = Scope.APP
