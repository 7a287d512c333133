from rich.pretty import pprint

from optscan import *


@option("d", "debug")
def debug():
    pass


specs = (
    OptionSpec("o", "output", ArgPolicy.REQUIRED_ARGUMENT),
    OptionSpec(long="color", policy=ArgPolicy.OPTIONAL_ARGUMENT, binding=FlagBinding("color")),
    debug,
)


if __name__ == '__main__':
    result = bind(parse(specs), environment=Environment(globals()))
    pprint(result)
    result.check(shell=True)
