"""Built-in defaults for the changelog configuration."""

CONFIG_FILE_NAME = ".changelog_config.json"
DEFAULT_OUTPUT = "CHANGELOG.md"
DEFAULT_PARSE_WORKERS = 1

# Block tags sit on their own lines (trim_blocks/lstrip_blocks are on);
# inline conditionals use expressions so line endings survive.
DEFAULT_TEMPLATE = """\
# Changelog
{% for release in releases %}

## {{ release.title }}{{ " (" ~ release.date ~ ")" if release.date else "" }}
{% if release.next_version %}

Suggested version: {{ release.next_version }} ({{ release.bump }})
{% endif %}
{% for section in release.sections %}

### {{ section.label }}

{% for commit in section.commits %}
- {{ ("**" ~ commit.scope ~ ":** ") if commit.scope else "" }}{{ commit.subject }} ({{ commit.short_hash }})
{% if commit.breaking and commit.breaking_description != commit.subject %}
  - {{ commit.breaking_description }}
{% endif %}
{% endfor %}
{% endfor %}
{% endfor %}
"""
