"""Jobs domain - Job status workflow, assignment and cancellation"""
