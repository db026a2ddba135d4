from . import mock
from . import rest

GATEWAYS = {
    "http": rest.HttpGateway,
    "mock": mock.MockGateway.from_file,
}
