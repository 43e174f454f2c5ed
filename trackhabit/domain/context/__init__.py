# This module assembles the context for one chat turn

# +---------------------+
# |     Data store      |   (Persistent, external, user-scoped)
# |---------------------|
# | Tasks (20 newest)   |
# | Notes (5 newest)    |
# | Team memberships    |
# | Chat log (6 newest) |
# +---------------------+
#          |
#          v
# +------------------------------+
# |        Context bundle        |   (One fragment per source,
# |------------------------------|    each with its own ok flag)
# | tasks / notes / teams        |
# | history, oldest first        |
# +------------------------------+
#          |
#          v
# +------------------------------+
# |        System message        |   (Instructions + today's date
# |------------------------------|    + rendered bundle)
# +------------------------------+
#          |
#          v
#   [completion API -> intents -> effects]
