"""
Learner progress & access-control client for the video-course platform.

Entry point:
    from coursehub.bootstrap import build_services
"""
