import asyncio
import threading
from types import SimpleNamespace

import pytest

from jobtrigger.catalog import Catalog, CatalogAgent
from jobtrigger.errors import InvalidCatalog
from jobtrigger.model import Brancher, Presubmit

CATALOG = """
periodics:
  - name: nightly-build
    cluster: build
presubmits:
  k8s/api:
    - name: unit-tests
      branches: [main]
postsubmits:
  k8s/api:
    - name: publish
pubsub_triggers:
  - project: ci-project
    topics: [jobs, more-jobs]
    allowed_clusters: [ci, build]
  - project: ci-project
    topics: [jobs]
    allowed_clusters: [build, gpu]
  - project: other-project
    topics: [jobs]
    allowed_clusters: ["*"]
"""


def test_branch_selection():
    assert Brancher().could_run("main")
    assert Brancher().could_run("anything/else")

    brancher = Brancher(branches=["main", "release-.*"])
    assert brancher.could_run("main")
    assert brancher.could_run("release-1.2")
    assert not brancher.could_run("feature")
    # patterns must match the whole branch
    assert not brancher.could_run("not-main")
    assert not brancher.could_run("main-fork")

    brancher = Brancher(skip_branches=["release-.*"])
    assert brancher.could_run("main")
    assert not brancher.could_run("release-1.2")

    brancher = Brancher(branches=["release-.*"], skip_branches=["release-0\\..*"])
    assert brancher.could_run("release-1.0")
    assert not brancher.could_run("release-0.9")


def test_invalid_branch_pattern():
    with pytest.raises(ValueError):
        Presubmit(name="bad", branches=["("])


def test_catalog_lookups():
    catalog = Catalog.from_yaml(CATALOG)

    assert [p.name for p in catalog.all_periodics()] == ["nightly-build"]
    assert catalog.all_periodics()[0].cluster == "build"
    assert [p.name for p in catalog.get_presubmits_static("k8s/api")] == ["unit-tests"]
    assert catalog.get_presubmits_static("k8s/other") == []
    assert [p.name for p in catalog.get_postsubmits_static("k8s/api")] == ["publish"]
    assert catalog.get_postsubmits_static("k8s/api")[0].cluster == "default"
    assert catalog.summary() == {"periodics": 1, "presubmits": 1, "postsubmits": 1}


def test_catalog_lookup_returns_copy():
    catalog = Catalog.from_yaml(CATALOG)
    catalog.get_presubmits_static("k8s/api").clear()
    catalog.all_periodics().clear()
    assert len(catalog.get_presubmits_static("k8s/api")) == 1
    assert len(catalog.all_periodics()) == 1


def test_empty_catalog():
    catalog = Catalog.from_yaml("")
    assert catalog.all_periodics() == []
    assert catalog.allowed_clusters("projects/p/subscriptions/s") == []


def test_allowed_clusters():
    catalog = Catalog.from_yaml(CATALOG)

    assert catalog.allowed_clusters("projects/ci-project/subscriptions/jobs") == [
        "ci",
        "build",
        "gpu",
    ]
    assert catalog.allowed_clusters("projects/ci-project/subscriptions/more-jobs") == [
        "ci",
        "build",
    ]
    assert catalog.allowed_clusters("projects/other-project/subscriptions/jobs") == [
        "*"
    ]
    assert catalog.allowed_clusters("projects/unknown/subscriptions/jobs") == []
    assert catalog.allowed_clusters("more-jobs") == ["ci", "build"]


@pytest.mark.parametrize(
    "raw",
    [
        "periodics: [{cluster: build}]",
        "periodics: [{name: x, unknown_field: 1}]",
        "presubmits: {k8s/api: [{name: x, branches: ['(']}]}",
        "periodics: [",
    ],
)
def test_invalid_catalog(raw):
    with pytest.raises(InvalidCatalog) as excinfo:
        Catalog.from_yaml(raw, source="catalog.yaml")
    assert excinfo.value.source == "catalog.yaml"


def test_agent_reload(tmp_path):
    path = tmp_path / "catalog.yaml"
    path.write_text(CATALOG)

    agent = CatalogAgent.from_path(path)
    first = agent.config()
    assert len(first.all_periodics()) == 1

    path.write_text("periodics: [{name: a}, {name: b}]")
    assert agent.reload()
    assert len(agent.config().all_periodics()) == 2
    # snapshots handed out before are untouched
    assert len(first.all_periodics()) == 1


def test_agent_reload_keeps_previous_on_error(tmp_path):
    path = tmp_path / "catalog.yaml"
    path.write_text(CATALOG)
    agent = CatalogAgent.from_path(path)
    before = agent.config()

    path.write_text("periodics: [{cluster: no-name}]")
    assert not agent.reload()
    assert agent.config() is before

    path.unlink()
    assert not agent.reload()
    assert agent.config() is before


def test_agent_without_path():
    agent = CatalogAgent()
    assert not agent.reload()
    assert agent.config().all_periodics() == []


class _Stop(Exception):
    pass


@pytest.mark.asyncio
async def test_agent_watch_reloads_off_loop(tmp_path, monkeypatch):
    path = tmp_path / "catalog.yaml"
    path.write_text(CATALOG)
    agent = CatalogAgent.from_path(path)
    path.write_text("periodics: [{name: a}, {name: b}]")

    sleeps = []

    async def sleep(interval):
        sleeps.append(interval)
        if len(sleeps) > 1:
            raise _Stop()

    threads = []
    reload = agent.reload

    def recording_reload():
        threads.append(threading.current_thread())
        return reload()

    monkeypatch.setattr(
        "jobtrigger.catalog.asyncio",
        SimpleNamespace(sleep=sleep, to_thread=asyncio.to_thread),
    )
    monkeypatch.setattr(agent, "reload", recording_reload)

    with pytest.raises(_Stop):
        await agent.watch(30)

    assert sleeps == [30, 30]
    assert len(agent.config().all_periodics()) == 2
    assert len(threads) == 1
    assert threads[0] is not threading.main_thread()
