"""Default configuration template.

This template is written to ~/.config/estmail/config.toml
when running `estmail config init`.
"""

CONFIG_TEMPLATE = """\
# estmail configuration

[engine]
executable = "estcmd"
# Run the engine on another host:
# prefix = ["ssh", "mailhost"]
additional_args = []
coding = "utf-8"
index_directory = "~/.estmail/casket"
large_result_threshold = 200
highlight = true

[index]
builder = "estcmd"
builder_args = ["gather", "-cl", "-fm", "-cm"]
target_directories = ["~/Mail"]
# Seconds before the index is considered stale; 0 disables refreshing.
refresh_interval = 3600

[query]
field_keywords = ["cdate", "mdate", "title", "author", "from", "to", "cc", "size"]
date_attribute = "cdate"

[paths]
normalize = false
case_sensitive = true
nnml_directory = "~/Mail"
nnmh_directory = "~/Mail"
cache_directory = "~/News/cache"
agent_directory = "~/News/agent"

# Mailboxes whose articles live under another directory:
#
# [[remote_groups]]
# pattern = "^nntp\\\\+news:"
# base_path = "/var/spool/news"
"""
