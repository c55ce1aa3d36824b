from taskrun.main import taskrun

taskrun()
