"""
Symbolic (casadi) Lie groups used to derive the numerical SO(3) functions.

so3.Dcm: 9 parameters, no singularities
so3.Quat: 4 parameters, no singularities, double cover q = -q
"""
