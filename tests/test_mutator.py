import copy

import pytest

from chaosblade_operator.mutator import (
    SIDECAR_NAME,
    MutationError,
    Mutator,
    WebhookSettings,
    build_webhook_parser,
    parse_webhook_args,
)
from chaosblade_operator.settings import OperatorSettings


def make_pod(name, volume, subpath, mount_name, mount_path="/data", propagation="Bidirectional"):
    mount = {"name": mount_name, "mountPath": mount_path}
    if propagation is not None:
        mount["mountPropagation"] = propagation
    return {
        "metadata": {
            "name": name,
            "annotations": {
                "chaosblade/inject-volume": volume,
                "chaosblade/inject-volume-subpath": subpath,
            },
        },
        "spec": {"containers": [{"name": name, "image": name, "volumeMounts": [mount]}]},
    }


@pytest.fixture
def mutator():
    return Mutator(WebhookSettings(sidecar_image="fuse:test"))


def test_mutate_success(mutator):
    pod = make_pod("test-0", "fuse-test", "data", "fuse-test")
    assert mutator.mutate_pod(pod) is True
    containers = pod["spec"]["containers"]
    assert [c["name"] for c in containers] == [SIDECAR_NAME, "test-0"]
    sidecar = containers[0]
    assert sidecar["image"] == "fuse:test"
    assert sidecar["args"] == [
        "--address=:65534",
        "--mountpoint=/data/data",
        "--original=/data/fuse-data",
    ]
    assert sidecar["volumeMounts"][0]["mountPropagation"] == "Bidirectional"
    assert sidecar["ports"] == [{"name": "fuse-port", "containerPort": 65534}]


def test_no_volume_mount(mutator):
    pod = make_pod("test-1", "fuse-test", "/data", "data")
    with pytest.raises(MutationError, match="^pod has no volume mount fuse-test$"):
        mutator.mutate_pod(pod)


def test_missing_propagation(mutator):
    pod = make_pod("test-2", "data", "/data", "data", propagation=None)
    with pytest.raises(MutationError) as info:
        mutator.mutate_pod(pod)
    assert str(info.value) == "target volume mount propagation must be HostToContainer or Bidirectional"


def test_unsupported_propagation(mutator):
    pod = make_pod("test-3", "data", "/data", "data", propagation="None")
    with pytest.raises(MutationError) as info:
        mutator.mutate_pod(pod)
    assert str(info.value) == "target volume mount propagation is not support"


def test_host_to_container_becomes_bidirectional(mutator):
    pod = make_pod("p", "data", "x", "data", propagation="HostToContainer")
    assert mutator.mutate_pod(pod)
    assert pod["spec"]["containers"][0]["volumeMounts"][0]["mountPropagation"] == "Bidirectional"


def test_mount_point_equal_to_mount_path(mutator):
    pod = make_pod("p", "data", "", "data")
    assert mutator.mutate_pod(pod)
    args = pod["spec"]["containers"][0]["args"]
    assert args[1] == "--mountpoint=/data"
    assert args[2] == "--original=/fuse-data"


def test_without_annotations_is_untouched(mutator):
    pod = {"metadata": {"name": "p"}, "spec": {"containers": [{"name": "c"}]}}
    before = copy.deepcopy(pod)
    assert mutator.mutate_pod(pod) is False
    assert pod == before


def test_already_injected_is_untouched(mutator):
    pod = make_pod("p", "data", "x", "data")
    pod["spec"]["containers"].append({"name": SIDECAR_NAME})
    before = copy.deepcopy(pod)
    assert mutator.mutate_pod(pod) is False
    assert pod == before


def test_sidecar_image_default():
    mutator = Mutator(operator=OperatorSettings(product="community"), version="1.5.0")
    assert mutator.sidecar_image() == "chaosbladeio/chaosblade-tool:1.5.0"


def test_handle_returns_patch(mutator):
    pod = make_pod("p", "data", "x", "data")
    response = mutator.handle({"uid": "u1", "object": pod})
    assert response["allowed"] is True
    assert response["uid"] == "u1"
    assert response["patchType"] == "JSONPatch"
    ops = {op["path"]: op for op in response["patch"]}
    assert ops["/spec/containers"]["op"] == "replace"
    assert ops["/spec/containers"]["value"][0]["name"] == SIDECAR_NAME
    assert len(pod["spec"]["containers"]) == 1


def test_handle_without_changes(mutator):
    response = mutator.handle({"uid": "u", "object": {"metadata": {"name": "p"}}})
    assert response == {"uid": "u", "allowed": True}


def test_handle_bad_request(mutator):
    response = mutator.handle({"uid": "u", "object": "{not json"})
    assert response["allowed"] is False
    assert response["status"]["code"] == 400


def test_handle_mutation_error(mutator):
    pod = make_pod("p", "fuse-test", "x", "data")
    response = mutator.handle({"uid": "u", "object": pod})
    assert response["allowed"] is False
    assert response["status"]["code"] == 500
    assert response["status"]["message"] == "pod has no volume mount fuse-test"


def test_parse_webhook_defaults():
    assert parse_webhook_args([]) == WebhookSettings("", 65534, 9443, False)


def test_parse_webhook_values():
    settings = parse_webhook_args(
        ["--fuse-sidecar-image", "img:1", "--fuse-server-port", "1234",
         "--webhook-port", "8443", "--webhook-enable"]
    )
    assert settings == WebhookSettings("img:1", 1234, 8443, True)


def test_parser_rejects_bad_bool():
    with pytest.raises(SystemExit):
        build_webhook_parser().parse_args(["--webhook-enable=maybe"])