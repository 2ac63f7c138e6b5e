"""Tests for `roll status` output parsing."""

from rolldev_mcp.parser import EnvironmentRecord, parse_environment_list, strip_ansi

from tests.conftest import SAMPLE_STATUS


def test_single_environment():
    output = """
ai-demo a magento2 project
  Project Directory: /Users/dev/ai-demo
  Project URL: https://app.ai-demo.test
  Docker Network: ai-demo_default
  Containers Running: 9
"""
    result = parse_environment_list(output)

    assert result == [
        EnvironmentRecord(
            name="ai-demo",
            path="/Users/dev/ai-demo",
            url="https://app.ai-demo.test",
            network="ai-demo_default",
            containers=9,
            raw="  Containers Running: 9",
        )
    ]


def test_multiple_environments_in_order():
    result = parse_environment_list(SAMPLE_STATUS)

    assert [env.name for env in result] == ["ai-demo", "test-project"]
    assert result[1].to_dict() == {
        "name": "test-project",
        "path": "/Users/dev/test-project",
        "url": "https://app.test-project.test",
        "network": "test-project_default",
        "containers": 5,
    }


def test_fields_in_any_order_before_containers():
    output = """
shop a magento2 project
  Docker Network: shop_default
  Project URL: https://app.shop.test
  Project Directory: /srv/shop
  Containers Running: 4
"""
    (env,) = parse_environment_list(output)
    assert (env.path, env.url, env.network, env.containers) == (
        "/srv/shop",
        "https://app.shop.test",
        "shop_default",
        4,
    )


def test_no_running_environments():
    assert parse_environment_list("\nNo running environments found\n") == []
    assert parse_environment_list("") == []


def test_ansi_color_codes_do_not_change_values():
    colored = (
        "\n"
        "\x1b[32mai-demo\x1b[0m a \x1b[33mmagento2\x1b[0m project\n"
        "  \x1b[36mProject Directory:\x1b[0m /Users/dev/ai-demo\n"
        "  \x1b[36mProject URL:\x1b[0m https://app.ai-demo.test\n"
        "  \x1b[36mDocker Network:\x1b[0m ai-demo_default\n"
        "  \x1b[36mContainers Running:\x1b[0m \x1b[1;32m9\x1b[0m\n"
    )
    (env,) = parse_environment_list(colored)

    assert env.to_dict() == {
        "name": "ai-demo",
        "path": "/Users/dev/ai-demo",
        "url": "https://app.ai-demo.test",
        "network": "ai-demo_default",
        "containers": 9,
    }
    # raw keeps the original line, colors included
    assert "\x1b[36m" in env.raw


def test_stops_at_services_table():
    output = """
ai-demo a magento2 project
  Project Directory: /Users/dev/ai-demo
  Containers Running: 9

NAME              STATE
rolldev-dnsmasq   running

late-project a magento2 project
  Project Directory: /Users/dev/late
  Containers Running: 2
"""
    result = parse_environment_list(output)
    assert [env.name for env in result] == ["ai-demo"]


def test_missing_url_and_network_are_none():
    output = """
incomplete-project a magento2 project
  Project Directory: /Users/dev/incomplete
  Containers Running: 3
"""
    (env,) = parse_environment_list(output)
    assert env.name == "incomplete-project"
    assert env.url is None
    assert env.network is None
    assert env.containers == 3


def test_containers_without_project_is_ignored():
    output = """
  Containers Running: 7
other a magento2 project
  Containers Running: 1
"""
    result = parse_environment_list(output)
    assert len(result) == 1
    assert result[0].name == "other"
    assert result[0].containers == 1


def test_unclosed_block_leaks_fields_into_next_project():
    # Known quirk: a new header only replaces the name.
    output = """
first a magento2 project
  Project Directory: /srv/first
  Project URL: https://app.first.test
second a magento2 project
  Containers Running: 2
"""
    (env,) = parse_environment_list(output)
    assert env.name == "second"
    assert env.path == "/srv/first"
    assert env.url == "https://app.first.test"


def test_state_is_reset_after_each_record():
    output = """
one a magento2 project
  Project URL: https://app.one.test
  Containers Running: 1
two a magento2 project
  Containers Running: 2
"""
    one, two = parse_environment_list(output)
    assert one.url == "https://app.one.test"
    assert two.url is None


def test_header_needs_single_word_type():
    output = """
shop a magento 2 project
  Containers Running: 1
"""
    assert parse_environment_list(output) == []


def test_non_numeric_container_count_is_ignored():
    output = """
shop a magento2 project
  Containers Running: many
  Containers Running: 0
"""
    (env,) = parse_environment_list(output)
    assert env.containers == 0


def test_strip_ansi():
    assert strip_ansi("\x1b[1;31mred\x1b[0m plain") == "red plain"
