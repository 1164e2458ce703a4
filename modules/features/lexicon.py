"""
Word lists used by the feature extractor.
"""

STOPWORDS = frozenset([
    'the', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of', 'with', 'by',
    'from', 'up', 'about', 'into', 'through', 'during', 'before', 'after', 'above',
    'below', 'under', 'over', 'between', 'among', 'within', 'without', 'toward',
    'towards', 'a', 'an', 'as', 'are', 'was', 'were', 'been', 'be', 'have', 'has',
    'had', 'do', 'does', 'did', 'will', 'would', 'could', 'should', 'may', 'might',
    'must', 'can', 'this', 'that', 'these', 'those', 'i', 'you', 'he', 'she', 'it',
    'we', 'they', 'my', 'your', 'his', 'her', 'its', 'our', 'their', 'me', 'him',
    'us', 'them', 'then', 'than', 'there', 'here', 'what', 'when', 'where', 'which',
    'while', 'who', 'whom', 'why', 'how', 'also', 'just', 'very', 'some', 'such',
    'into', 'onto', 'upon', 'because', 'been', 'being', 'each', 'other', 'only',
    'more', 'most', 'much', 'many', 'well', 'really', 'going', 'gonna', 'like',
])

POSITIVE_WORDS = frozenset([
    'great', 'excellent', 'amazing', 'wonderful', 'fantastic',
    'good', 'best', 'love', 'happy', 'excited',
])

NEGATIVE_WORDS = frozenset([
    'bad', 'terrible', 'awful', 'worst', 'hate',
    'sad', 'angry', 'frustrated', 'difficult', 'problem',
])
