# This module expands directives in agent prompts

#   prompt template
#   "Watch $SCREEN_OCR and compare with $MEMORY@bot1"
#         |
#         v
# +------------------------------+
# |      Directive registry      |   (fixed, ordered)
# |------------------------------|
# | $SCREEN_OCR   -> OCR text    |
# | $MEMORY@<id>  -> memory blob |
# | $SCREEN_64    -> image       |
# +------------------------------+
#         |
#         v
# +------------------------------+
# |        PreProcessor          |   (one pass per execution cycle)
# |------------------------------|
# | drain each kind in order     |
# | rescan after each splice     |
# | failures -> "[Error ...]"    |
# +------------------------------+
#         |
#         v
#   PreProcessorResult(modified_prompt, images)
#         |
#         v
#   [model client]
