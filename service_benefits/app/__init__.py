"""
Benefits Service package for the HR services platform.

Manages benefit types and the benefits attached to employees. Employees are
owned by the workers service; attaching or listing benefits checks the
employee reference against it and only refuses when the employee is
confirmed absent.
"""
