import yaml

from runfromyaml.document import load_document
from runfromyaml.generator import explain_document, generate_document, to_yaml


def names(doc):
    return [b["name"] for b in doc["cmd"]]


def test_generic_description_gets_one_shell_block():
    doc = generate_document("tidy up the build folder")
    assert names(doc) == ["generated-commands"]
    assert "env" not in doc


def test_docker_compose_wins_over_plain_docker():
    assert names(generate_document("start docker compose stack")) == ["docker-compose-setup"]
    assert names(generate_document("run a docker container")) == ["docker-setup"]


def test_postgres_database_with_web_app():
    doc = generate_document("Postgres database for my web app")
    assert names(doc) == ["postgres-config", "database-setup", "web-config", "web-app-setup"]
    assert [e["key"] for e in doc["env"]] == ["DB_HOST", "DB_PORT", "APP_PORT"]


def test_ssh_and_config_blocks():
    doc = generate_document("push config to remote host")
    assert names(doc) == ["generated-config", "ssh-operation"]


def test_generated_documents_are_valid():
    for text in ("docker compose", "mysql database", "web server config over ssh", "anything"):
        load_document(to_yaml(generate_document(text)))


def test_to_yaml_keeps_section_order():
    text = to_yaml(generate_document("web app"))
    assert text.index("logging:") < text.index("env:") < text.index("cmd:")
    assert yaml.safe_load(text)["cmd"][0]["confperm"] == 0o644


def test_explain_document():
    doc = yaml.safe_load(
        """
env:
  - key: FOO
    value: bar
cmd:
  - type: ssh
    name: remote
    desc: check uptime
  - type: conf
"""
    )
    text = explain_document(doc)
    assert "Set FOO = bar" in text
    assert "1. remote (ssh)" in text
    assert "Description: check uptime" in text
    assert "via SSH" in text
    assert "2. (unnamed) (conf)" in text
