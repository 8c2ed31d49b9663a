"""
Exam delivery portal: timed assessment sessions and exact-match scoring
"""
