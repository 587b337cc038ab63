# This module holds agent context that outlives a single execution cycle

# +---------------------+
# |      Agent store    |   (persistent, per agent)
# |---------------------|
# | Agent record        |
# | Post-processing code|
# | Memory blob         |
# +---------------------+
#         |
#         v
#   $MEMORY@<agent_id> directives read it during pre-processing
