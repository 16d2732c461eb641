import re

import faultline
from faultline import version


def test_version_string_is_semverish() -> None:
    assert isinstance(version.__version__, str)
    assert re.fullmatch(r"\d+\.\d+\.\d+([.-][0-9A-Za-z.]+)?", version.__version__) is not None


def test_public_api_is_exported() -> None:
    for name in faultline.__all__:
        assert hasattr(faultline, name), name
