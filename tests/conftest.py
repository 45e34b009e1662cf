import textwrap
from pathlib import Path

import pytest

from tests.infrastructure.file_utils import write_templates


@pytest.fixture
def template_tree(tmp_path: Path) -> Path:
    """Input tree with two convertible templates, one broken one and a non-template file."""
    root = tmp_path / "in"
    write_templates(root, {
        "hello.ftl": "Hello ${name}\n",
        "mail/welcome.ftl": textwrap.dedent("""\
            <#if client_id="mim">Hi ${user.name}<#else>Bye</#if>
            <#list users as user>${user.name}</#list>
            ${ad.price!''}
            """),
        "mail/broken.ftl": "<#function f x><#return x></#function>\n",
        "notes.txt": "not a template ${x}\n",
    })
    return root


@pytest.fixture
def clean_tree(tmp_path: Path) -> Path:
    """Input tree where every template converts."""
    root = tmp_path / "in"
    write_templates(root, {
        "a.ftl": "Hello ${name}\n",
        "nested/b.ftl": "${ad.price!''}\n",
    })
    return root
