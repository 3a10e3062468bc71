import pytest
from cascade.runtime import Runtime


@pytest.fixture
def runtime():
	rt = Runtime(name="test")
	try:
		yield rt
	finally:
		rt.close()
