"""
Default configuration of template compilation.
"""

#####################################################################################################################################################
#####
#####  COMPILATION
#####

FILENAME = '<template>'     # pseudo-filename reported in error messages and attached to compiled expression code

# rendering of a conditional attribute list whose entries are all false:
#   'keep' -> the attribute is rendered with an empty value:  class=""
#   'omit' -> the attribute is left out of the tag
EMPTY_LIST = 'keep'
EMPTY_LIST_MODES = ('keep', 'omit')


#####################################################################################################################################################
#####
#####  CACHING
#####

CACHE_SIZE = 128            # max. no. of compiled templates kept by xmlfmt.compile() for reuse; 0 disables caching
